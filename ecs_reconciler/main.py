import argparse
import json
import logging
import sys
from typing import Any

from ecs_reconciler.core import RunContext, configure_logging
from ecs_reconciler.core.exceptions import BaseError
from ecs_reconciler.deployment import (
    CONFIG_FILE,
    Artifact,
    DeploymentConfig,
    DeploymentRegistration,
    DeploymentResult,
    EcsDeployment,
    RepoRef,
    RoleAssumption,
    ServiceSpec,
)


def _parse_repo(value: str) -> RepoRef:
    owner, sep, name = value.partition("/")
    if not sep or not owner or not name:
        raise argparse.ArgumentTypeError(
            f"Expected OWNER/NAME, got {value!r}"
        )
    return RepoRef(owner=owner, name=name)


def deploy(
    image: str,
    repo: RepoRef,
    sha: str | None,
    path: str,
    config: str,
    region: str | None,
    role_arn: str | None,
    service_name: str | None,
    provider: str,
    timeout: float | None,
) -> DeploymentResult:
    """
    Deploy an image
    """
    deployment_config = DeploymentConfig.load(config)
    if timeout is not None:
        deployment_config = deployment_config.copy(
            update={
                "stability": deployment_config.stability.copy(
                    update={"timeout_seconds": timeout}
                )
            }
        )
    component = EcsDeployment(
        config=deployment_config,
        __provider__=provider,
    )
    registration = DeploymentRegistration(
        region=region,
        role=RoleAssumption(role_arn=role_arn) if role_arn else None,
        service=(
            ServiceSpec(service_name=service_name) if service_name else None
        ),
    )
    response = component.deploy(
        artifact=Artifact(image_name=image, version=sha, repo=repo),
        registration=registration,
        run_context=RunContext(path=path),
    )
    return response.result


def main():
    parser = argparse.ArgumentParser(
        prog="ecs-reconciler", description="ECS deployment reconciler"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    deploy_parser = subparsers.add_parser(
        "deploy", help="Deploy an image to an ECS service"
    )
    deploy_parser_arguments: list[tuple[str, Any, Any, str, bool]] = [
        ("--image", str, None, "Full image reference", True),
        ("--repo", _parse_repo, None, "Repository as OWNER/NAME", True),
        ("--sha", str, None, "Commit or version being deployed", False),
        ("--path", str, ".", "Repository checkout", False),
        ("--config", str, CONFIG_FILE, "Configuration file", False),
        ("--region", str, None, "AWS region", False),
        ("--role-arn", str, None, "Role to assume", False),
        ("--service-name", str, None, "Service name", False),
        ("--provider", str, "amazon_ecs", "Deployment provider", False),
        ("--timeout", float, None, "Stability timeout in seconds", False),
    ]
    for arg in deploy_parser_arguments:
        deploy_parser.add_argument(
            arg[0], type=arg[1], default=arg[2], help=arg[3], required=arg[4]
        )
    deploy_parser.add_argument(
        "--verbose", action="store_true", help="Log platform calls"
    )

    args = parser.parse_args()
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    if args.command == "deploy":
        try:
            result = deploy(
                image=args.image,
                repo=args.repo,
                sha=args.sha,
                path=args.path,
                config=args.config,
                region=args.region,
                role_arn=args.role_arn,
                service_name=args.service_name,
                provider=args.provider,
                timeout=args.timeout,
            )
        except BaseError as e:
            result = DeploymentResult(
                code=1, message=str(e), error=type(e).__name__
            )
        except KeyboardInterrupt:
            print("Deployment interrupted.", file=sys.stderr)
            sys.exit(130)
        print(json.dumps(result.to_goal_result(), indent=2))
        sys.exit(result.code)


if __name__ == "__main__":
    main()
