from ecs_reconciler.deployment import (
    AwsVpcConfiguration,
    ContainerDefinition,
    DeploymentConfiguration,
    NetworkConfiguration,
    PortMapping,
    ServiceSpec,
    TaskDefinitionSpec,
)
from ecs_reconciler.deployment._converter import (
    RequestConverter,
    ResultConverter,
)


def test_task_definition_request():
    task_def = TaskDefinitionSpec(
        family="api",
        cpu="0.5 vCPU",
        memory="1 GB",
        network_mode="awsvpc",
        requires_compatibilities=["FARGATE"],
        container_definitions=[
            ContainerDefinition(
                name="api",
                image="acme/api:1",
                cpu="256",
                memory=512,
                port_mappings=[PortMapping(container_port=80)],
                config={"essential": True},
            )
        ],
        config={"ephemeralStorage": {"sizeInGiB": 21}},
    )
    assert RequestConverter().convert_task_definition(task_def) == {
        "family": "api",
        "cpu": "512",
        "memory": "1024",
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "containerDefinitions": [
            {
                "name": "api",
                "image": "acme/api:1",
                "cpu": 256,
                "memory": 512,
                "portMappings": [{"containerPort": 80}],
                "essential": True,
            }
        ],
        "ephemeralStorage": {"sizeInGiB": 21},
    }


def test_registered_revision_drops_platform_fields():
    native = {
        "taskDefinitionArn": "arn:aws:ecs:us-east-1:1:task-definition/api:7",
        "family": "api",
        "revision": 7,
        "status": "ACTIVE",
        "compatibilities": ["EC2", "FARGATE"],
        "requiresAttributes": [{"name": "ecs.capability.task-eni"}],
        "registeredAt": "2024-01-01T00:00:00Z",
        "cpu": "256",
        "memory": "512",
        "containerDefinitions": [
            {
                "name": "api",
                "image": "acme/api:1",
                "portMappings": [
                    {"containerPort": 80, "hostPort": 80, "protocol": "tcp"}
                ],
                "healthCheck": {
                    "command": ["CMD-SHELL", "true"],
                    "interval": 30,
                    "startPeriod": 30,
                },
            }
        ],
    }
    revision = ResultConverter().convert_revision(native)
    assert revision.reference == "api:7"
    assert revision.arn.endswith("api:7")
    assert revision.native == native
    task_def = revision.task_definition
    assert task_def.config is None
    assert task_def.cpu == 256
    container = task_def.container_definitions[0]
    assert container.port_mappings[0].protocol == "tcp"
    assert container.health_check.interval == 30
    assert container.health_check.start_period == 30


def test_create_service_request_strips_metadata():
    service = ServiceSpec(
        service_name="api",
        cluster="tutorial",
        launch_type="FARGATE",
        desired_count=2,
        task_definition="api:3",
        name="API",
        description="Public API",
        config={"name": "stale", "enableExecuteCommand": True},
    )
    assert RequestConverter().convert_create_service(service) == {
        "serviceName": "api",
        "cluster": "tutorial",
        "launchType": "FARGATE",
        "desiredCount": 2,
        "taskDefinition": "api:3",
        "enableExecuteCommand": True,
    }


def test_update_service_request():
    service = ServiceSpec(
        service_name="api",
        cluster="tutorial",
        launch_type="FARGATE",
        desired_count=0,
        task_definition="api:3",
        platform_version="LATEST",
        network_configuration=NetworkConfiguration(
            awsvpc_configuration=AwsVpcConfiguration(
                subnets=["subnet-1"], assign_public_ip="ENABLED"
            )
        ),
        deployment_configuration=DeploymentConfiguration(
            maximum_percent=200, minimum_healthy_percent=50
        ),
        config={"enableExecuteCommand": True},
    )
    assert RequestConverter().convert_update_service(service) == {
        "service": "api",
        "taskDefinition": "api:3",
        "forceNewDeployment": True,
        "cluster": "tutorial",
        "desiredCount": 0,
        "deploymentConfiguration": {
            "maximumPercent": 200,
            "minimumHealthyPercent": 50,
        },
        "networkConfiguration": {
            "awsvpcConfiguration": {
                "subnets": ["subnet-1"],
                "assignPublicIp": "ENABLED",
            }
        },
        "platformVersion": "LATEST",
    }


def test_update_service_request_omits_unset_fields():
    service = ServiceSpec(service_name="api", task_definition="api:1")
    assert RequestConverter().convert_update_service(service) == {
        "service": "api",
        "taskDefinition": "api:1",
        "forceNewDeployment": True,
    }
