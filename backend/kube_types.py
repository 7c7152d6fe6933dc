"""
Type definitions for release resources and rollout state.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


POD_TEMPLATE_HASH_LABEL = "pod-template-hash"

TEST_HOOK_EVENTS = frozenset({"test", "test-success", "test-failure"})
PENDING_STATUSES = frozenset({"pending-install", "pending-upgrade", "pending-rollback"})
STATUS_SUPERSEDED = "superseded"


def api_group_of(api_version: str) -> str:
    """Strip the trailing version segment: ``apps/v1`` -> ``apps``, ``v1`` -> ``v1``."""
    parts = api_version.split("/")
    if len(parts) > 1:
        return "/".join(parts[:-1])
    return api_version


@dataclass(frozen=True)
class ResourceIdentity:
    """Identity of one rendered manifest document."""
    namespace: str
    name: str
    kind: str
    api_group: str

    def __str__(self) -> str:
        return f"{self.namespace}, {self.name}, {self.kind} ({self.api_group})"


@dataclass(frozen=True)
class ResourceRecord:
    """One parsed manifest document."""
    identity: ResourceIdentity
    api_version: str
    content: str
    obj: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self) -> str:
        return str(self.identity)

    @property
    def kind(self) -> str:
        return self.identity.kind

    @property
    def namespace(self) -> str:
        return self.identity.namespace

    @property
    def name(self) -> str:
        return self.identity.name


class ChangeType(Enum):
    """Classification of a resource between two release revisions."""
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"

    @property
    def marker(self) -> str:
        return {"added": "++", "changed": "~~", "removed": "--"}[self.value]


@dataclass(frozen=True)
class DeltaEntry:
    """Added/Changed carry the current record; Removed carries none."""
    change: ChangeType
    identity: ResourceIdentity
    record: Optional[ResourceRecord] = None

    @property
    def key(self) -> str:
        return str(self.identity)


class WorkloadKind(Enum):
    DEPLOYMENT = "Deployment"
    STATEFUL_SET = "StatefulSet"
    DEPLOYMENT_CONFIG = "DeploymentConfig"
    OTHER = "Other"

    @classmethod
    def from_kind(cls, kind: str) -> "WorkloadKind":
        for member in cls:
            if member is not cls.OTHER and member.value == kind:
                return member
        return cls.OTHER


@dataclass
class ControllerPair:
    """A parent workload and the child controller of its current template generation."""
    parent: Dict[str, Any]
    child: Dict[str, Any]


@dataclass
class ReadinessResult:
    """Readiness verdict for one wait target in one poll tick."""
    key: str
    kind: WorkloadKind
    ready: bool
    message: Optional[str] = None
    ready_replicas: Optional[int] = None
    desired_replicas: Optional[int] = None


class WaitState(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class ReleaseHook:
    """Lifecycle hook of a release revision."""
    name: str
    kind: str
    path: str
    manifest: str
    events: List[str] = field(default_factory=list)

    @property
    def is_test(self) -> bool:
        """True when every event of the hook is a release-test event."""
        return bool(self.events) and all(event in TEST_HOOK_EVENTS for event in self.events)


@dataclass
class ReleaseRevision:
    """One numbered revision of a Helm release."""
    name: str
    version: int
    namespace: str
    status: str
    manifest: str = ""
    hooks: List[ReleaseHook] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES
