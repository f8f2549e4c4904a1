import json


def main(value, envelope):
    body = (
        "<html><body>"
        f"<h2>Platform Variables</h2><pre>{json.dumps(envelope, indent=2, sort_keys=True)}</pre>"
        f"<h2>Action Payload</h2><pre>{json.dumps(value, indent=2, sort_keys=True)}</pre>"
        "</body></html>"
    )
    return {
        "statusCode": 200,
        "headers": {
            "Set-Cookie": ["UserID=Jane; Max-Age=3600; Version=", "SessionID=abcdefg123456; Path=/"],
            "Content-Type": "text/html",
        },
        "body": body,
    }
