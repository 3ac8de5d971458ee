import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from content_ingest.common import DEFAULT_REGION
from content_ingest.errors import StorageError

logger = logging.getLogger(__name__)

PUBLIC_READ = 'public-read'


@dataclass(frozen=True)
class StorageObject:
    key: str
    data: bytes
    content_type: str
    metadata: Dict[str, str] = field(default_factory=dict)
    acl: str = PUBLIC_READ


class StorageInterface(ABC):
    """Publishes a StorageObject and returns its public URI"""

    @abstractmethod
    def store_image(self, storage_object: StorageObject) -> str:
        pass


class S3Storage(StorageInterface):

    def __init__(self, bucket_name: str, s3_client,
                 base_uri: Optional[str] = None, region: str = DEFAULT_REGION):
        self.bucket_name = bucket_name
        self.s3_client = s3_client
        self.base_uri = base_uri
        self.region = region

    def public_uri(self, key: str) -> str:
        path = quote(key, safe='/')
        if self.base_uri:
            return f"{self.base_uri.rstrip('/')}/{path}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{path}"

    def store_image(self, storage_object: StorageObject) -> str:
        try:
            self.s3_client.put_object(
                ACL=storage_object.acl,
                Body=storage_object.data,
                Bucket=self.bucket_name,
                ContentType=storage_object.content_type,
                Key=storage_object.key,
                Metadata=storage_object.metadata,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("put_object failed for %s: %s", storage_object.key, e)
            raise StorageError(
                f"Save error: {e}. Metadata: {json.dumps(storage_object.metadata)}"
            )

        logger.info("Stored %s (%d bytes)", storage_object.key, len(storage_object.data))
        return self.public_uri(storage_object.key)
