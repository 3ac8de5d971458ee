import logging
from typing import Dict, Any, Optional

from content_ingest.common import Settings, configure_logging, create_s3_client
from content_ingest.errors import IngestError
from content_ingest.file_types import sniff_format
from content_ingest.image_processing import ImageNormalizer
from content_ingest.metadata import build_metadata, derive_storage_key
from content_ingest.responses import ResponseFormatter
from content_ingest.storage import StorageInterface, S3Storage, StorageObject
from content_ingest.validation import RequestAuthenticator, PayloadValidator

logger = logging.getLogger(__name__)


class ImageIngestService:
    """Runs one upload through auth, validation, normalization and storage"""

    def __init__(self,
                 settings: Settings,
                 storage: StorageInterface,
                 validator: Optional[PayloadValidator] = None,
                 normalizer: Optional[ImageNormalizer] = None,
                 formatter: Optional[ResponseFormatter] = None):
        self.authenticator = RequestAuthenticator(settings.access_key)
        self.storage = storage
        self.validator = validator or PayloadValidator()
        self.normalizer = normalizer or ImageNormalizer()
        self.formatter = formatter or ResponseFormatter()

    def ingest(self, event: Dict[str, Any]) -> str:
        """Store the uploaded image and return its public URI"""
        self.authenticator.authenticate(event)
        request = self.validator.validate(event)

        sniffed = sniff_format(request.image)
        normalized = self.normalizer.normalize(request.image, sniffed)

        storage_object = StorageObject(
            key=derive_storage_key(request, sniffed),
            data=normalized.data,
            content_type=sniffed.mime_type,
            metadata=build_metadata(request),
        )
        return self.storage.store_image(storage_object)

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        try:
            uri = self.ingest(event)
        except IngestError as e:
            return self.formatter.error_response(e.message, e.status_code)
        return self.formatter.uri_response(uri)


class ServiceFactory:
    """Wires the service to S3 for a Lambda invocation"""

    @staticmethod
    def create_image_ingest_service(settings: Settings) -> ImageIngestService:
        storage = S3Storage(
            settings.bucket_name,
            create_s3_client(settings),
            base_uri=settings.image_access_base_uri,
            region=settings.region,
        )
        return ImageIngestService(settings=settings, storage=storage)


def lambda_handler(event, context):
    """
    Upload a base64 image with Salesforce provenance metadata to S3
    """
    configure_logging()
    try:
        settings = Settings.from_env()
        service = ServiceFactory.create_image_ingest_service(settings)
        return service.handle(event)
    except IngestError as e:
        return ResponseFormatter.error_response(e.message, e.status_code)
    except Exception:
        logger.exception("Unhandled error during upload")
        return ResponseFormatter.error_response('Internal server error', 500)
