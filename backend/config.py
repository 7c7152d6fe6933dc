"""
Configuration settings for helm-rollout-wait.
"""
from dataclasses import dataclass, fields
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    APP_NAME: str = Field(default="helm-rollout-wait", description="Application name")
    APP_ENV: str = Field(default="dev", description="Environment: dev|staging|prod")
    APP_VERSION: str = Field(default="0.4.0", description="Application version")

    # HTTP Configuration
    HTTP_PORT: int = Field(default=8002, description="Service port")

    # Kubernetes Configuration
    K8S_NAMESPACE: str = Field(default="default", description="Release namespace")
    K8S_CONTEXT: Optional[str] = Field(default=None, description="Kubernetes context")
    K8S_IN_CLUSTER: bool = Field(default=False, description="Running in cluster")
    KUBECONFIG: Optional[str] = Field(default=None, description="Path to the kubeconfig file")

    # Helm Configuration
    HELM_DRIVER: str = Field(default="secret", description="Release storage driver: secret|configmap")

    # Wait Configuration
    WAIT_TIMEOUT_SECS: int = Field(default=300, description="Bound on the whole wait")
    POLL_INTERVAL_SECS: float = Field(default=5.0, description="Interval between readiness checks")
    MAX_PARALLEL_LOOKUPS: int = Field(default=1, ge=1, description="Concurrent lookups per tick")
    TRACK_DEPLOYMENTS: bool = Field(default=True, description="Wait for Deployment resources")
    TRACK_DEPLOYMENT_CONFIGS: bool = Field(default=False, description="Wait for OpenShift DeploymentConfig resources")
    TRACK_STATEFUL_SETS: bool = Field(default=True, description="Wait for StatefulSet resources")
    CHECK_EXISTING: bool = Field(default=False, description="Wait for all resources, not only changes")
    INCLUDE_TEST_HOOKS: bool = Field(default=False, description="Include release-test hooks")

    # Service Configuration
    LOG_LEVEL: str = Field(default="info", description="Log level: info|debug|warning")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@dataclass
class WaitOptions:
    """Explicit configuration of one wait operation."""
    timeout: int = 300
    namespace: str = "default"
    kube_context: Optional[str] = None
    kubeconfig: Optional[str] = None
    in_cluster: bool = False
    helm_driver: str = "secret"
    track_deployments: bool = True
    track_deployment_configs: bool = False
    track_stateful_sets: bool = True
    check_existing: bool = False
    include_test_hooks: bool = False
    poll_interval: float = 5.0
    max_workers: int = 1

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "WaitOptions":
        """Build options from settings; overrides set to None are ignored."""
        options = cls(
            timeout=settings.WAIT_TIMEOUT_SECS,
            namespace=settings.K8S_NAMESPACE,
            kube_context=settings.K8S_CONTEXT,
            kubeconfig=settings.KUBECONFIG,
            in_cluster=settings.K8S_IN_CLUSTER,
            helm_driver=settings.HELM_DRIVER,
            track_deployments=settings.TRACK_DEPLOYMENTS,
            track_deployment_configs=settings.TRACK_DEPLOYMENT_CONFIGS,
            track_stateful_sets=settings.TRACK_STATEFUL_SETS,
            check_existing=settings.CHECK_EXISTING,
            include_test_hooks=settings.INCLUDE_TEST_HOOKS,
            poll_interval=settings.POLL_INTERVAL_SECS,
            max_workers=settings.MAX_PARALLEL_LOOKUPS,
        )
        known = {f.name for f in fields(cls)}
        for key, value in overrides.items():
            if key not in known:
                raise TypeError(f"Unknown wait option: {key}")
            if value is not None:
                setattr(options, key, value)
        return options


# Global settings instance
settings = Settings()
