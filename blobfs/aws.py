"""
AWS client construction.
"""

import logging
from typing import Any

import boto3

from blobfs.config import Settings, get_settings
from blobfs.errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_aws_clients(settings: Settings | None = None) -> tuple[Any, Any]:
    """
    Build the S3 and SQS clients from settings.

    Args:
        settings: Settings to use. Defaults to the cached application settings.

    Returns:
        Tuple of (s3_client, sqs_client).

    Raises:
        ConfigurationError: An access key id or secret access key is missing.
    """
    settings = settings or get_settings()

    if not settings.aws_access_key_id:
        raise ConfigurationError(
            "The S3 filesystem store needs AWS credentials but aws_access_key_id is not set. "
            "Set the AWS_ACCESS_KEY_ID environment variable or pass it in Settings."
        )
    if not settings.aws_secret_access_key:
        raise ConfigurationError(
            "The S3 filesystem store needs AWS credentials but aws_secret_access_key is not set. "
            "Set the AWS_SECRET_ACCESS_KEY environment variable or pass it in Settings."
        )

    session = boto3.session.Session(
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
    )
    s3 = session.client("s3", endpoint_url=settings.aws_endpoint_url)
    sqs = session.client("sqs", endpoint_url=settings.aws_endpoint_url)

    logger.info(
        "AWS clients created",
        extra={"region": settings.aws_region, "endpoint_url": settings.aws_endpoint_url},
    )
    return s3, sqs
