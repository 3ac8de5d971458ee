import uuid
from typing import Dict
from urllib.parse import quote

from content_ingest.file_types import SniffedFormat
from content_ingest.validation import IngestRequest

# Characters encodeURIComponent leaves alone
URI_COMPONENT_SAFE = "-_.!~*'()"

# Optional request attributes and their S3 metadata keys. The flag marks
# free-text values that must be escaped.
OPTIONAL_METADATA = [
    ('ccampaign_id', 'SalesforceCCampaignId', False),
    ('content_document_id', 'SalesforceContentDocumentId', False),
    ('content_type', 'SalesforceContentType', True),
    ('content_version_id', 'SalesforceContentVersionId', False),
    ('name', 'SalesforceFilename', True),
    ('user_id', 'SalesforceUserId', False),
]


def metadata_escape(value: str) -> str:
    """
    URL-encode untrusted input for S3 user metadata. Over REST, metadata
    values only reliably support US-ASCII, hence the aggressive encoding.
    """
    return quote(value, safe=URI_COMPONENT_SAFE)


def build_metadata(request: IngestRequest) -> Dict[str, str]:
    metadata = {}

    # At least one of these exists once validation has passed
    if request.account_id:
        metadata['SalesforceAccountId'] = request.account_id
    if request.champion_fund_id:
        metadata['SalesforceChampionFundId'] = request.champion_fund_id

    # S3 rejects null header values, so absent fields are left out
    for attribute, key, escape in OPTIONAL_METADATA:
        value = getattr(request, attribute)
        if not value:
            continue
        metadata[key] = metadata_escape(value) if escape else value

    return metadata


def derive_storage_key(request: IngestRequest, sniffed: SniffedFormat) -> str:
    """Build ``{owner}/{type}/{uuid}.{ext}``; uniqueness rests on uuid4"""
    generated_name = f"{uuid.uuid4()}.{sniffed.extension}"
    return f"{request.owner_id}/{request.type}/{generated_name}"
