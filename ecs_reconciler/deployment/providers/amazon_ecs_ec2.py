"""
AWS ECS EC2 deployment.
"""

from __future__ import annotations

__all__ = ["AmazonECSEC2"]

from typing import Any, Literal

from ..config import DeploymentConfig
from .amazon_ecs import AmazonECS


class AmazonECSEC2(AmazonECS):
    def __init__(
        self,
        region: str | None = None,
        config: DeploymentConfig | None = None,
        config_path: str | None = None,
        network_mode: Literal["awsvpc", "bridge", "host"] = "awsvpc",
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        profile_name: str | None = None,
        session: Any = None,
        nparams: dict[str, Any] = {},
        **kwargs: Any,
    ):
        """Initialize AWS ECS EC2 deployment provider.

        Args:
            region: AWS region.
            config: Deployment configuration.
            config_path: Path of the YAML configuration.
            network_mode:
                Network mode of the task definitions,
                either "awsvpc", "bridge", or "host".
                Endpoints are only resolved for "awsvpc".
            aws_access_key_id: AWS access key ID.
            aws_secret_access_key: AWS secret access key.
            aws_session_token: AWS session token.
            profile_name: AWS profile name to use.
            session: Ready boto3 session to use instead of credentials.
            nparams: Native params to AWS clients.
        """

        super().__init__(
            region=region,
            config=config,
            config_path=config_path,
            launch_type="EC2",
            network_mode=network_mode,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            aws_session_token=aws_session_token,
            profile_name=profile_name,
            session=session,
            nparams=nparams,
            **kwargs,
        )
