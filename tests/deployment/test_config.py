import pytest

from ecs_reconciler.core.exceptions import (
    InvalidSpecFileError,
    MissingConfigurationError,
    NotFoundError,
)
from ecs_reconciler.deployment import DeploymentConfig

CONFIG = """
region: us-east-1
cluster: tutorial
launch_type: FARGATE
desired_count: 3
network_configuration:
  awsvpc_configuration:
    subnets: [subnet-1]
    assign_public_ip: ENABLED
task_defaults:
  cpu: 1 vCPU
  memory: 2 GB
stability:
  timeout_seconds: 120
"""


def test_load(tmp_path):
    path = tmp_path / "ecs.yaml"
    path.write_text(CONFIG)
    config = DeploymentConfig.load(str(path))
    assert config.cluster == "tutorial"
    assert config.desired_count == 3
    assert config.task_defaults.cpu == 1024
    assert config.task_defaults.memory == 2048
    assert config.task_defaults.network_mode == "awsvpc"
    assert config.stability.timeout_seconds == 120
    assert config.stability.delay_seconds == 15
    assert config.endpoint_workers == 8
    assert config.spec_dir == ".ecs"


def test_missing_keys_are_reported_together(tmp_path):
    path = tmp_path / "ecs.yaml"
    path.write_text("region: us-east-1\ncluster: tutorial\n")
    with pytest.raises(MissingConfigurationError) as e:
        DeploymentConfig.load(str(path))
    assert e.value.keys == ["launch_type", "desired_count"]
    assert "launch_type, desired_count" in str(e.value)


def test_empty_file(tmp_path):
    path = tmp_path / "ecs.yaml"
    path.write_text("")
    with pytest.raises(MissingConfigurationError) as e:
        DeploymentConfig.load(str(path))
    assert e.value.keys == ["cluster", "launch_type", "desired_count"]


def test_zero_desired_count_is_set():
    config = DeploymentConfig(
        cluster="tutorial", launch_type="EC2", desired_count=0
    )
    assert config.service_defaults() == {
        "cluster": "tutorial",
        "launchType": "EC2",
        "desiredCount": 0,
    }


def test_missing_file(tmp_path):
    with pytest.raises(NotFoundError):
        DeploymentConfig.load(str(tmp_path / "ecs.yaml"))


@pytest.mark.parametrize("content", ["cluster: [tutorial", "- tutorial\n"])
def test_invalid_file(tmp_path, content):
    path = tmp_path / "ecs.yaml"
    path.write_text(content)
    with pytest.raises(InvalidSpecFileError) as e:
        DeploymentConfig.load(str(path))
    assert e.value.path == str(path)
