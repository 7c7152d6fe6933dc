"""
Parsing of rendered release manifests into addressable resource records.
"""
import logging
import re
from typing import Dict, Any

import yaml

from errors import ManifestParseError
from kube_types import ResourceIdentity, ResourceRecord, ReleaseRevision, api_group_of

logger = logging.getLogger(__name__)

YAML_SEPARATOR = "\n---\n"
# A line holding only "---", including one that ends the text without a newline
SEPARATOR_LINE = re.compile(r"\n---[ \t]*(?:\n|\Z)")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def parse_manifest(manifest: str, default_namespace: str) -> Dict[str, ResourceRecord]:
    """
    Split a multi-document manifest into resource records keyed by identity.

    Content before the first separator is discarded, so every document must
    be preceded by a ``---`` line. The first document seen for an identity
    wins; later duplicates are logged and dropped.

    Args:
        manifest: Rendered manifest text
        default_namespace: Namespace for documents that do not set one

    Returns:
        Mapping of identity string to ResourceRecord
    """
    result: Dict[str, ResourceRecord] = {}
    documents = SEPARATOR_LINE.split(manifest)

    for content in documents[1:]:
        if not content.strip():
            continue

        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as e:
            logger.error(f"❌ YAML unmarshal error: {e}")
            raise ManifestParseError(f"Can't read metadata from document:\n{content}") from e

        # Template that only contains comments in the current state
        if parsed is None:
            continue
        if not isinstance(parsed, dict):
            raise ManifestParseError(f"Document is not a mapping:\n{content}")

        metadata = parsed.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ManifestParseError(f"Document metadata is not a mapping:\n{content}")

        api_version = _text(parsed.get("apiVersion"))
        kind = _text(parsed.get("kind"))
        namespace = _text(metadata.get("namespace"))
        name = _text(metadata.get("name"))

        if not (api_version or kind or namespace or name):
            continue

        if not name:
            logger.warning(f"⚠️ Document of kind {kind or '<none>'} has no metadata.name")

        identity = ResourceIdentity(
            namespace=namespace or default_namespace,
            name=name,
            kind=kind,
            api_group=api_group_of(api_version),
        )
        key = str(identity)

        if key in result:
            logger.warning(f"⚠️ Found duplicate key {key!r} in manifest, keeping the first one")
            continue

        result[key] = ResourceRecord(
            identity=identity,
            api_version=api_version,
            content=content,
            obj=parsed,
        )

    return result


def build_release_manifest(release: ReleaseRevision, include_test_hooks: bool = False) -> str:
    """Concatenate the primary manifest with the manifests of the release hooks."""
    manifest = release.manifest
    # Helm 3 writes the first document as "---\n# Source: ..." with no leading newline
    if manifest.startswith("---\n"):
        manifest = "\n" + manifest

    for hook in release.hooks:
        if not include_test_hooks and hook.is_test:
            logger.debug(f"Skipping test hook {hook.path}")
            continue
        manifest += YAML_SEPARATOR
        manifest += f"# Source: {hook.path}\n"
        manifest += hook.manifest

    return manifest


def parse_release(release: ReleaseRevision, include_test_hooks: bool = False) -> Dict[str, ResourceRecord]:
    """Build the snapshot of one release revision."""
    snapshot = parse_manifest(
        build_release_manifest(release, include_test_hooks=include_test_hooks),
        release.namespace,
    )
    logger.info(f"📋 Parsed {len(snapshot)} resources from {release.name} revision {release.version}")
    return snapshot
