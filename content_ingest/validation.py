import json
import base64
import binascii
import hmac
import logging
import re
from dataclasses import dataclass
from typing import Dict, Any, Optional

from content_ingest.errors import UnauthorizedError, MissingMetadataError, IdMismatchError

logger = logging.getLogger(__name__)

BEARER_PREFIX = 'Bearer '
_BASE64_WHITESPACE = re.compile(r'\s+')
_URLSAFE_TO_STANDARD = str.maketrans('-_', '+/')


@dataclass(frozen=True)
class IngestRequest:
    """A validated upload request. Empty strings are stored as None."""
    type: str
    image: bytes
    account_id: Optional[str] = None
    champion_fund_id: Optional[str] = None
    ccampaign_id: Optional[str] = None
    content_document_id: Optional[str] = None
    content_type: Optional[str] = None
    content_version_id: Optional[str] = None
    name: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def owner_id(self) -> str:
        return self.account_id or self.champion_fund_id


class RequestAuthenticator:
    """Shared-secret bearer check"""

    def __init__(self, access_key: str):
        self.access_key = access_key

    @staticmethod
    def get_authorization(event: Dict[str, Any]) -> Optional[str]:
        headers = event.get('headers') or {}
        if 'Authorization' in headers:
            return headers['Authorization']
        # HTTP APIs deliver lower-cased header names
        for name, value in headers.items():
            if name.lower() == 'authorization':
                return value
        return None

    def authenticate(self, event: Dict[str, Any]) -> None:
        auth_given = self.get_authorization(event)
        if auth_given is None:
            logger.warning("Rejected request without Authorization header")
            raise UnauthorizedError()

        token = str(auth_given)
        if token.startswith(BEARER_PREFIX):
            token = token[len(BEARER_PREFIX):]

        if not hmac.compare_digest(token.encode('utf-8'), self.access_key.encode('utf-8')):
            logger.warning("Rejected request with invalid bearer token")
            raise UnauthorizedError()


class PayloadValidator:
    """Parses the event body into an IngestRequest"""

    OPTIONAL_FIELDS = {
        'ccampaignId': 'ccampaign_id',
        'contentDocumentId': 'content_document_id',
        'contentType': 'content_type',
        'contentVersionId': 'content_version_id',
        'name': 'name',
        'userId': 'user_id',
    }

    @staticmethod
    def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
        raw = event.get('body')
        if isinstance(raw, dict):
            return raw
        if not isinstance(raw, (str, bytes)) or not raw:
            raise MissingMetadataError()

        try:
            if event.get('isBase64Encoded'):
                raw = base64.b64decode(raw)
            body = json.loads(raw)
        except (ValueError, binascii.Error):
            logger.warning("Request body is not valid JSON")
            raise MissingMetadataError()

        if not isinstance(body, dict):
            raise MissingMetadataError()
        return body

    @staticmethod
    def text_field(body: Dict[str, Any], field: str) -> Optional[str]:
        """Read a scalar field. Falsy scalars (None, '', false, 0) count as absent."""
        value = body.get(field)
        if isinstance(value, (dict, list)) or value is True:
            raise MissingMetadataError()
        if not value:
            return None
        return str(value)

    @staticmethod
    def decode_image(encoded: Any) -> bytes:
        if not isinstance(encoded, str) or not encoded:
            raise MissingMetadataError()

        # Accept the URL-safe alphabet and missing padding
        cleaned = _BASE64_WHITESPACE.sub('', encoded).translate(_URLSAFE_TO_STANDARD)
        cleaned += '=' * (-len(cleaned) % 4)
        try:
            decoded = base64.b64decode(cleaned, validate=True)
        except (ValueError, binascii.Error):
            logger.warning("Image body is not valid base64")
            raise MissingMetadataError()

        if not decoded:
            raise MissingMetadataError()
        return decoded

    def validate(self, event: Dict[str, Any]) -> IngestRequest:
        body = self.parse_body(event)

        image = self.decode_image(body.get('body'))
        account_id = self.text_field(body, 'accountId')
        champion_fund_id = self.text_field(body, 'championFundId')
        content_type = self.text_field(body, 'type')

        if not (account_id or champion_fund_id) or not content_type:
            logger.warning("Request is missing an owner id or type")
            raise MissingMetadataError()

        optional = {attr: self.text_field(body, field)
                    for field, attr in self.OPTIONAL_FIELDS.items()}

        # A champion fund upload cannot also belong to an account or campaign
        if champion_fund_id and (account_id or optional['ccampaign_id']):
            logger.warning("championFundId supplied alongside accountId or ccampaignId")
            raise IdMismatchError()

        return IngestRequest(
            type=content_type,
            image=image,
            account_id=account_id,
            champion_fund_id=champion_fund_id,
            **optional
        )
