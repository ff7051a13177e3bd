import json
import sys
from datetime import datetime, timezone

import requests

COLLECTOR_URL = "http://localhost:8088/"


def build_payload(data: dict) -> dict:
    """Fill in a client timestamp when the caller did not give one."""
    payload = {
        "referrer": "",
        "user_agent": "send_beacon.py",
        "dark_mode": None,
        "url": "/",
    }
    payload.update(data)
    payload.setdefault(
        "timestamp", datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    )
    return payload


def send_beacon(data: dict, real_ip=None, url=COLLECTOR_URL) -> requests.Response:
    headers = {"X-Real-IP": real_ip} if real_ip else {}
    response = requests.post(url, json=build_payload(data), headers=headers, timeout=10)
    response.raise_for_status()
    return response


if __name__ == "__main__":
    if len(sys.argv) in (2, 3):
        # Expecting JSON: {"url": "/x", "referrer": "...", "dark_mode": true}
        data = json.loads(sys.argv[1])
        real_ip = sys.argv[2] if len(sys.argv) == 3 else None
        resp = send_beacon(data, real_ip=real_ip)
        print(f"{resp.status_code} {resp.text}")
    else:
        print(
            'Usage: python scripts/send_beacon.py \'{"url": "/x", "dark_mode": true}\' [X-Real-IP]'
        )
