#!/usr/bin/env python3
"""
Smoke check for a deployed content ingest endpoint
Posts a handful of uploads and reports the status codes returned
"""

import requests
import json
import base64
from PIL import Image
import io
import sys


def create_test_image():
    """Create a small PNG and return it base64 encoded"""
    img = Image.new('RGB', (100, 100), color='red')
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return base64.b64encode(buffer.getvalue()).decode('utf-8')


def post_upload(endpoint, token, payload):
    return requests.post(
        endpoint,
        headers={'Authorization': f'Bearer {token}'},
        data=json.dumps(payload),
        timeout=30,
    )


def check(label, response, expected_status):
    passed = response.status_code == expected_status
    status = "✅" if passed else "❌"
    print(f"{status} {label}: {response.status_code} {response.text}")
    return passed


def run_smoke(endpoint, token):
    print(f"Testing ingest endpoint at: {endpoint}")
    print("=" * 50)

    image_data = create_test_image()
    results = []

    try:
        response = post_upload(endpoint, token, {
            'body': image_data,
            'accountId': 'smoke-account',
            'type': 'photo',
            'name': 'smoke test.png',
        })
        results.append(check("Valid PNG upload", response, 200))
        if response.status_code == 200:
            print(f"   URI: {response.json().get('uri')}")

        response = post_upload(endpoint, 'wrong-token', {
            'body': image_data,
            'accountId': 'smoke-account',
            'type': 'photo',
        })
        results.append(check("Wrong bearer token", response, 401))

        response = post_upload(endpoint, token, {
            'body': image_data,
            'accountId': 'smoke-account',
            'championFundId': 'smoke-fund',
            'type': 'photo',
        })
        results.append(check("Id mismatch", response, 400))

        response = post_upload(endpoint, token, {
            'body': base64.b64encode(b'just some text').decode('utf-8'),
            'accountId': 'smoke-account',
            'type': 'photo',
        })
        results.append(check("Text file upload", response, 400))
    except requests.RequestException as e:
        print(f"❌ Request error: {str(e)}")
        return False

    print("\n" + "=" * 50)
    print(f"{sum(results)}/{len(results)} checks passed")
    return all(results)


def main():
    """Main function"""
    if len(sys.argv) != 3:
        print("Usage: python smoke_api.py <ENDPOINT_URL> <ACCESS_KEY>")
        print("Example: python smoke_api.py http://localhost:4566/restapis/abc123/dev/_user_request_/images secret")
        sys.exit(1)

    ok = run_smoke(sys.argv[1], sys.argv[2])
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
