import asyncio
import threading

import pytest

from ecs_reconciler.deployment import (
    Abort,
    Artifact,
    Continue,
    DeploymentRegistration,
    ListenerRegistration,
    RepoRef,
    RoleAssumption,
    ServiceSpec,
    TaskDefinitionSpec,
)
from ecs_reconciler.core import RunContext
from ecs_reconciler.deployment.providers import amazon_ecs

from deployment._fakes import FakeSession, client_error
from deployment._providers import DeploymentProvider, get_config
from deployment._sync_and_async_client import EcsDeploymentClient

IMAGE = "123456789012.dkr.ecr.us-east-1.amazonaws.com/acme/api:1.0.0"

PROVIDERS = [
    DeploymentProvider.AMAZON_ECS,
    DeploymentProvider.AMAZON_ECS_FARGATE,
    DeploymentProvider.AMAZON_ECS_EC2,
]


@pytest.fixture
def repo_path(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM node:20\nEXPOSE 8080\n")
    return str(tmp_path)


@pytest.fixture
def session():
    session = FakeSession()
    session.ecs.add_task("t1", "eni-1")
    session.ecs.add_task("t2", "eni-2")
    session.ec2.public_ips = {"eni-1": "54.0.0.1", "eni-2": "54.0.0.2"}
    return session


def _artifact(image: str = IMAGE) -> Artifact:
    return Artifact(
        image_name=image,
        version="abc123",
        repo=RepoRef(owner="acme", name="Api"),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("provider_type", PROVIDERS)
@pytest.mark.parametrize("async_call", [False, True])
async def test_first_deploy_creates_service(
    provider_type, async_call, session, repo_path
):
    client = EcsDeploymentClient(provider_type, async_call, session)
    res = await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    result = res.result
    assert result.code == 0, result.message
    assert result.action == "created"
    assert [u.url for u in result.external_urls] == [
        "tcp://54.0.0.1:8080",
        "tcp://54.0.0.2:8080",
    ]
    assert result.to_goal_result() == {
        "code": 0,
        "message": "Service api created.",
        "externalUrls": [
            {"url": "tcp://54.0.0.1:8080"},
            {"url": "tcp://54.0.0.2:8080"},
        ],
    }

    launch_type = "EC2" if provider_type == "amazon_ecs_ec2" else "FARGATE"
    registered = session.ecs.calls_to("register_task_definition")[0]
    assert registered["family"] == "api"
    assert registered["requiresCompatibilities"] == [launch_type]
    assert registered["containerDefinitions"][0]["image"] == IMAGE
    assert registered["containerDefinitions"][0]["portMappings"] == [
        {"containerPort": 8080, "hostPort": 8080}
    ]
    created = session.ecs.calls_to("create_service")[0]
    assert created["serviceName"] == "api"
    assert created["taskDefinition"] == "api:1"
    assert created["launchType"] == launch_type
    assert created["cluster"] == "tutorial"
    assert set(session.regions) == {"us-east-1"}


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_redeploy_reuses_revision(async_call, session, repo_path):
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    res = await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    assert res.result.code == 0
    assert res.result.action == "updated"
    assert len(session.ecs.calls_to("register_task_definition")) == 1
    updated = session.ecs.calls_to("update_service")[0]
    assert updated["service"] == "api"
    assert updated["taskDefinition"] == "api:1"
    assert updated["forceNewDeployment"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_new_image_registers_revision(async_call, session, repo_path):
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    res = await client.deploy(
        artifact=_artifact(IMAGE.replace("1.0.0", "1.1.0")),
        run_context=RunContext(path=repo_path),
    )
    assert res.result.code == 0
    assert len(session.ecs.calls_to("register_task_definition")) == 2
    assert session.ecs.calls_to("update_service")[0]["taskDefinition"] == (
        "api:2"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_platform_error_is_reported(async_call, session, repo_path):
    session.ecs.errors["create_service"] = client_error(
        "AccessDeniedException",
        "User is not authorized to perform: ecs:CreateService",
        "CreateService",
    )
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    assert res.result.code == 1
    assert res.result.error == "PlatformError"
    assert res.result.message == (
        "User is not authorized to perform: ecs:CreateService"
    )
    assert session.ecs.calls_to("describe_services") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_stability_timeout_is_reported(async_call, session, repo_path):
    session.ecs.describe_services_responses = [
        {
            "services": [
                {
                    "serviceName": "api",
                    "status": "ACTIVE",
                    "runningCount": 0,
                    "desiredCount": 1,
                    "deployments": [{"status": "PRIMARY"}],
                }
            ]
        }
    ]
    config = get_config(stability={"timeout_seconds": 0, "delay_seconds": 0})
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session, config
    )
    res = await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    assert res.result.code == 1
    assert res.result.error == "StabilityTimeoutError"
    assert session.ec2.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_ambiguous_port_never_reaches_platform(
    async_call, session, tmp_path
):
    (tmp_path / "Dockerfile").write_text("FROM nginx\n")
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=str(tmp_path))
    )
    assert res.result.code == 1
    assert res.result.error == "AmbiguousPortError"
    assert session.ecs.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_missing_image(async_call, session, repo_path):
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(image=""), run_context=RunContext(path=repo_path)
    )
    assert res.result.code == 1
    assert session.ecs.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_before_listener_abort(async_call, session, repo_path):
    calls = []

    def block(registration, event, result):
        calls.append((event, registration.task_definition.family))
        return Abort(code=2, message="Deployments are frozen")

    def after(registration, event, result):
        calls.append((event, None))

    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(),
        listeners=[
            ListenerRegistration(name="freeze", listener=block),
            ListenerRegistration(name="after", listener=after),
        ],
        run_context=RunContext(path=repo_path),
    )
    assert res.result.to_goal_result() == {
        "code": 2,
        "message": "Deployments are frozen",
    }
    assert calls == [("before", "api")]
    assert session.ecs.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_listeners_update_registration_and_urls(
    async_call, session, repo_path
):
    def rename(registration, event, result):
        service = registration.service.copy(update={"service_name": "edge"})
        return Continue(
            registration=registration.copy(update={"service": service})
        )

    def publish(registration, event, result):
        assert result.code == 0
        return Continue(external_urls=["https://edge.example.com"])

    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(),
        listeners=[
            ListenerRegistration(
                name="rename", listener=rename, events=("before",)
            ),
            ListenerRegistration(
                name="publish", listener=publish, events=("after",)
            ),
        ],
        run_context=RunContext(path=repo_path),
    )
    assert res.result.code == 0
    assert [u.url for u in res.result.external_urls] == [
        "https://edge.example.com"
    ]
    assert session.ecs.calls_to("create_service")[0]["serviceName"] == "edge"


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_after_listener_abort(async_call, session, repo_path):
    def smoke_test(registration, event, result):
        return Abort(code=4, message="Smoke test failed")

    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(),
        listeners=[
            ListenerRegistration(
                name="smoke", listener=smoke_test, events=("after",)
            )
        ],
        run_context=RunContext(path=repo_path),
    )
    assert res.result.code == 4
    assert res.result.message == "Smoke test failed"
    assert res.result.action == "created"
    assert res.result.external_urls == []
    assert res.result.to_goal_result() == {
        "code": 4,
        "message": "Smoke test failed",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_registered_revision_and_urls(async_call, session, repo_path):
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(),
        registration=DeploymentRegistration(
            region="eu-west-1",
            task_definition_ref="api:7",
            external_urls=["https://api.example.com"],
        ),
        run_context=RunContext(path=repo_path),
    )
    assert res.result.code == 0
    assert [u.url for u in res.result.external_urls] == [
        "https://api.example.com"
    ]
    assert session.ecs.calls_to("register_task_definition") == []
    assert session.ecs.calls_to("list_tasks") == []
    assert session.ecs.calls_to("create_service")[0]["taskDefinition"] == (
        "api:7"
    )
    assert set(session.regions) == {"eu-west-1"}


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_role_is_assumed(async_call, session, repo_path, monkeypatch):
    assumed = FakeSession(ecs=session.ecs, ec2=session.ec2)
    session_kwargs = []

    def create_session(**kwargs):
        session_kwargs.append(kwargs)
        return assumed

    monkeypatch.setattr(amazon_ecs.boto3, "Session", create_session)
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(),
        registration=DeploymentRegistration(
            role=RoleAssumption(
                role_arn="arn:aws:iam::123456789012:role/deployer",
                external_id="ext",
            )
        ),
        run_context=RunContext(path=repo_path),
    )
    assert res.result.code == 0
    assert session.sts.calls_to("assume_role") == [
        {
            "RoleArn": "arn:aws:iam::123456789012:role/deployer",
            "RoleSessionName": "ecs-reconciler",
            "ExternalId": "ext",
        }
    ]
    assert session_kwargs == [
        {
            "aws_access_key_id": "ASIAFAKE",
            "aws_secret_access_key": "secret",
            "aws_session_token": "token",
        }
    ]
    assert assumed.regions == ["us-east-1", "us-east-1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_operations(async_call, session, repo_path):
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.merge_specs(
        artifact=_artifact(), run_context=RunContext(path=repo_path)
    )
    registration = res.result
    assert registration.task_definition.family == "api"
    assert registration.service.service_name == "api"

    res = await client.resolve_revision(
        task_definition=registration.task_definition
    )
    assert res.result.reference == "api:1"

    service = registration.service.copy(
        update={"task_definition": res.result.reference}
    )
    res = await client.reconcile_service(service=service)
    assert res.result.action == "created"
    assert res.native is None

    res = await client.wait_for_stable(service_name="api")
    assert res.result["serviceName"] == "api"
    assert session.ecs.calls_to("describe_services")[0]["cluster"] == (
        "tutorial"
    )

    res = await client.resolve_endpoints(service=service)
    assert res.result == ["tcp://54.0.0.1:8080", "tcp://54.0.0.2:8080"]


@pytest.mark.asyncio
async def test_operation_arguments_from_dicts(session):
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, False, session
    )
    res = await client.resolve_revision(
        task_definition={
            "family": "worker",
            "cpu": "1 vCPU",
            "container_definitions": [{"name": "worker", "image": "w:1"}],
        }
    )
    assert res.result.reference == "worker:1"
    assert session.ecs.calls_to("register_task_definition")[0]["cpu"] == (
        "1024"
    )


@pytest.mark.asyncio
async def test_cancelling_adeploy_stops_the_wait(session, repo_path):
    pending = {
        "services": [
            {
                "serviceName": "api",
                "status": "ACTIVE",
                "runningCount": 0,
                "desiredCount": 1,
                "deployments": [{"status": "PRIMARY"}],
            }
        ]
    }
    session.ecs.describe_services_responses = [pending] * 10
    provider = amazon_ecs.AmazonECS(
        session=session,
        config=get_config(
            stability={"timeout_seconds": 60, "delay_seconds": 30}
        ),
    )
    cancel_event = threading.Event()
    task = asyncio.ensure_future(
        provider.adeploy(
            artifact=_artifact(),
            run_context=RunContext(path=repo_path),
            cancel_event=cancel_event,
        )
    )
    for _ in range(100):
        if session.ecs.calls_to("describe_services"):
            break
        await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancel_event.is_set()


def test_caller_specs_override_defaults(session, repo_path):
    provider = amazon_ecs.AmazonECS(session=session, config=get_config())
    res = provider.deploy(
        artifact=_artifact(),
        registration=DeploymentRegistration(
            service=ServiceSpec(desired_count=0),
            task_definition=TaskDefinitionSpec(family="custom"),
        ),
        run_context=RunContext(path=repo_path),
    )
    assert res.result.code == 0
    created = session.ecs.calls_to("create_service")[0]
    assert created["desiredCount"] == 0
    assert created["taskDefinition"] == "custom:1"


@pytest.mark.asyncio
@pytest.mark.parametrize("event", ["before", "after"])
@pytest.mark.parametrize("async_call", [False, True])
async def test_raising_listener_fails_deployment(
    async_call, event, session, repo_path
):
    def broken(registration, event, result):
        raise RuntimeError("hook exploded")

    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(),
        listeners=[
            ListenerRegistration(
                name="broken", listener=broken, events=(event,)
            )
        ],
        run_context=RunContext(path=repo_path),
    )
    assert res.result.to_goal_result() == {
        "code": 1,
        "message": "Listener broken failed: hook exploded",
    }
    created = session.ecs.calls_to("create_service")
    assert len(created) == (0 if event == "before" else 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_udp_port_is_registered(async_call, session, tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM coredns\nEXPOSE 53/udp\n")
    client = EcsDeploymentClient(
        DeploymentProvider.AMAZON_ECS, async_call, session
    )
    res = await client.deploy(
        artifact=_artifact(), run_context=RunContext(path=str(tmp_path))
    )
    assert res.result.code == 0
    registered = session.ecs.calls_to("register_task_definition")[0]
    assert registered["containerDefinitions"][0]["portMappings"] == [
        {"containerPort": 53, "hostPort": 53, "protocol": "udp"}
    ]
    assert [u.url for u in res.result.external_urls] == [
        "udp://54.0.0.1:53",
        "udp://54.0.0.2:53",
    ]
