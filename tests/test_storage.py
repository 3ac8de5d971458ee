import pytest
import json
import os
from unittest.mock import MagicMock
from botocore.exceptions import ClientError, EndpointConnectionError
from moto import mock_aws
import boto3

os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'

from content_ingest.common import Settings, create_s3_client
from content_ingest.errors import StorageError, MisconfigurationError
from content_ingest.storage import S3Storage, StorageObject


def make_object(**overrides):
    fields = {
        'key': '001xx/photo/abc.png',
        'data': b'png-bytes',
        'content_type': 'image/png',
        'metadata': {'SalesforceAccountId': '001xx'},
    }
    fields.update(overrides)
    return StorageObject(**fields)


class TestS3Storage:
    """Test cases for publishing to S3"""

    def test_put_object_parameters(self):
        s3_client = MagicMock()
        storage = S3Storage('bucket', s3_client)

        storage.store_image(make_object())

        s3_client.put_object.assert_called_once_with(
            ACL='public-read',
            Body=b'png-bytes',
            Bucket='bucket',
            ContentType='image/png',
            Key='001xx/photo/abc.png',
            Metadata={'SalesforceAccountId': '001xx'},
        )

    def test_fallback_uri(self):
        storage = S3Storage('bucket', MagicMock())
        assert storage.store_image(make_object()) == \
            'https://bucket.s3.eu-west-2.amazonaws.com/001xx/photo/abc.png'

    def test_region_in_fallback_uri(self):
        storage = S3Storage('bucket', MagicMock(), region='us-east-1')
        assert storage.public_uri('a/b.png') == 'https://bucket.s3.us-east-1.amazonaws.com/a/b.png'

    @pytest.mark.parametrize('base_uri', ['https://cdn.example.org', 'https://cdn.example.org/'])
    def test_base_uri(self, base_uri):
        storage = S3Storage('bucket', MagicMock(), base_uri=base_uri)
        assert storage.public_uri('a/b.png') == 'https://cdn.example.org/a/b.png'

    def test_uri_path_is_quoted(self):
        storage = S3Storage('bucket', MagicMock(), base_uri='https://cdn.example.org')
        assert storage.public_uri('001xx/head shot/x.png') == \
            'https://cdn.example.org/001xx/head%20shot/x.png'

    def test_client_error_includes_metadata(self):
        s3_client = MagicMock()
        s3_client.put_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'Access Denied'}}, 'PutObject'
        )
        storage = S3Storage('bucket', s3_client)

        with pytest.raises(StorageError) as exc_info:
            storage.store_image(make_object())

        assert exc_info.value.status_code == 500
        assert exc_info.value.message.startswith('Save error: ')
        assert 'AccessDenied' in exc_info.value.message
        assert exc_info.value.message.endswith(
            'Metadata: ' + json.dumps({'SalesforceAccountId': '001xx'})
        )
        s3_client.put_object.assert_called_once()

    def test_connection_error(self):
        s3_client = MagicMock()
        s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url='http://localhost')
        storage = S3Storage('bucket', s3_client)

        with pytest.raises(StorageError):
            storage.store_image(make_object())

    @mock_aws
    def test_missing_bucket_is_storage_error(self):
        settings = Settings(access_key='k', bucket_name='no-such-bucket')
        storage = S3Storage(settings.bucket_name, create_s3_client(settings))

        with pytest.raises(StorageError) as exc_info:
            storage.store_image(make_object())
        assert 'NoSuchBucket' in exc_info.value.message

    @mock_aws
    def test_stores_object_in_bucket(self):
        s3_client = boto3.client('s3', region_name='eu-west-2')
        s3_client.create_bucket(
            Bucket='bucket',
            CreateBucketConfiguration={'LocationConstraint': 'eu-west-2'},
            ObjectOwnership='ObjectWriter'
        )
        storage = S3Storage('bucket', create_s3_client(Settings(access_key='k', bucket_name='bucket')))

        storage.store_image(make_object())

        stored = s3_client.get_object(Bucket='bucket', Key='001xx/photo/abc.png')
        assert stored['Body'].read() == b'png-bytes'
        assert stored['ContentType'] == 'image/png'


class TestSettings:
    """Test cases for environment configuration"""

    def test_from_env(self):
        settings = Settings.from_env({
            'ACCESS_KEY': 'secret',
            'S3_BUCKET': 'bucket',
            'IMAGE_ACCESS_BASE_URI': 'https://cdn.example.org',
            'AWS_REGION': 'us-west-1',
        })
        assert settings.access_key == 'secret'
        assert settings.bucket_name == 'bucket'
        assert settings.image_access_base_uri == 'https://cdn.example.org'
        assert settings.region == 'us-west-1'
        assert settings.endpoint_url is None

    def test_defaults(self):
        settings = Settings.from_env({'ACCESS_KEY': 'secret', 'S3_BUCKET': 'bucket',
                                      'IMAGE_ACCESS_BASE_URI': ''})
        assert settings.image_access_base_uri is None
        assert settings.region == 'eu-west-2'

    @pytest.mark.parametrize('environ', [
        {},
        {'ACCESS_KEY': 'secret'},
        {'S3_BUCKET': 'bucket'},
        {'ACCESS_KEY': '', 'S3_BUCKET': 'bucket'},
    ])
    def test_missing_required(self, environ):
        with pytest.raises(MisconfigurationError) as exc_info:
            Settings.from_env(environ)
        assert exc_info.value.status_code == 500
