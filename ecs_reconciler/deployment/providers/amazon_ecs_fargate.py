"""
AWS ECS Fargate deployment.
"""

from __future__ import annotations

__all__ = ["AmazonECSFargate"]

from typing import Any

from ..config import DeploymentConfig
from .amazon_ecs import AmazonECS


class AmazonECSFargate(AmazonECS):
    def __init__(
        self,
        region: str | None = None,
        config: DeploymentConfig | None = None,
        config_path: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        profile_name: str | None = None,
        session: Any = None,
        nparams: dict[str, Any] = {},
        **kwargs: Any,
    ):
        """Initialize AWS ECS Fargate deployment provider.

        Args:
            region: AWS region.
            config: Deployment configuration.
            config_path: Path of the YAML configuration.
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
            launch_type="FARGATE",
            network_mode="awsvpc",
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            aws_session_token=aws_session_token,
            profile_name=profile_name,
            session=session,
            nparams=nparams,
            **kwargs,
        )
