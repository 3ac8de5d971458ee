import json
from typing import Dict, Any

JSON_HEADERS = {'Content-Type': 'application/json'}


class ResponseFormatter:
    """Builds API Gateway proxy responses"""

    @staticmethod
    def success_response(data: Dict[str, Any], status_code: int = 200) -> Dict[str, Any]:
        return {
            'statusCode': status_code,
            'headers': dict(JSON_HEADERS),
            'body': json.dumps(data)
        }

    @staticmethod
    def error_response(error_message: str, status_code: int = 400) -> Dict[str, Any]:
        return {
            'statusCode': status_code,
            'headers': dict(JSON_HEADERS),
            'body': json.dumps({'error': error_message})
        }

    @classmethod
    def uri_response(cls, uri: str) -> Dict[str, Any]:
        return cls.success_response({'uri': uri})
