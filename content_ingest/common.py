import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import boto3
from botocore.config import Config

from content_ingest.errors import MisconfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'eu-west-2'
MAX_IMAGE_DIMENSION = 2500
# Largest input accepted for decoding, 0x3FFF * 0x3FFF pixels
MAX_INPUT_PIXELS = 268402689


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the Lambda environment"""
    access_key: str
    bucket_name: str
    image_access_base_uri: Optional[str] = None
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> 'Settings':
        access_key = environ.get('ACCESS_KEY')
        bucket_name = environ.get('S3_BUCKET')
        if not access_key or not bucket_name:
            logger.error("ACCESS_KEY or S3_BUCKET is not set")
            raise MisconfigurationError()

        return cls(
            access_key=access_key,
            bucket_name=bucket_name,
            image_access_base_uri=environ.get('IMAGE_ACCESS_BASE_URI') or None,
            region=environ.get('AWS_REGION') or DEFAULT_REGION,
            endpoint_url=environ.get('AWS_ENDPOINT_URL') or None,
        )


def configure_logging(environ: Mapping[str, str] = os.environ) -> None:
    """Apply LOG_LEVEL to the root logger Lambda installs"""
    level = environ.get('LOG_LEVEL', 'INFO').upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig()
    root.setLevel(level)


def create_s3_client(settings: Settings):
    """Create an S3 client using SigV4, optionally against a LocalStack endpoint"""
    return boto3.client(
        's3',
        region_name=settings.region,
        endpoint_url=settings.endpoint_url,
        config=Config(signature_version='s3v4'),
    )
