from ecs_reconciler.core.exceptions import (
    AmbiguousPortError,
    DeploymentCancelledError,
    InvalidSpecFileError,
    MissingBuildContextError,
    MissingConfigurationError,
    PlatformError,
    ServiceNotStableError,
    StabilityTimeoutError,
)

from ._differ import is_reusable
from ._listeners import Abort, Continue, ListenerRegistration, invoke_listeners
from ._merge import deep_merge
from ._models import (
    Artifact,
    AwsVpcConfiguration,
    ContainerDefinition,
    DeploymentConfiguration,
    DeploymentRegistration,
    DeploymentResult,
    ExternalUrl,
    HealthCheck,
    NetworkConfiguration,
    PortMapping,
    ReconcileOutcome,
    RepoRef,
    RoleAssumption,
    ServiceSpec,
    TaskDefinitionRevision,
    TaskDefinitionSpec,
)
from ._project import LocalProject, Project, parse_exposed_ports
from ._spec_merger import SpecMerger
from .component import EcsDeployment
from .config import (
    CONFIG_FILE,
    DeploymentConfig,
    StabilityConfig,
    TaskDefaults,
)

__all__ = [
    "EcsDeployment",
    "DeploymentConfig",
    "StabilityConfig",
    "TaskDefaults",
    "CONFIG_FILE",
    "SpecMerger",
    "deep_merge",
    "is_reusable",
    "parse_exposed_ports",
    "LocalProject",
    "Project",
    "Abort",
    "Continue",
    "ListenerRegistration",
    "invoke_listeners",
    "Artifact",
    "AwsVpcConfiguration",
    "ContainerDefinition",
    "DeploymentConfiguration",
    "DeploymentRegistration",
    "DeploymentResult",
    "ExternalUrl",
    "HealthCheck",
    "NetworkConfiguration",
    "PortMapping",
    "ReconcileOutcome",
    "RepoRef",
    "RoleAssumption",
    "ServiceSpec",
    "TaskDefinitionRevision",
    "TaskDefinitionSpec",
    "AmbiguousPortError",
    "DeploymentCancelledError",
    "InvalidSpecFileError",
    "MissingBuildContextError",
    "MissingConfigurationError",
    "PlatformError",
    "ServiceNotStableError",
    "StabilityTimeoutError",
]
