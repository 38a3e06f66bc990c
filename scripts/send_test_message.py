#!/usr/bin/env python3
"""Script to send a test chat message through the API as a given user."""

import asyncio
import json
import os
import sys
import time

import httpx

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.auth import sign_request
from core.config import settings


async def send_message(sender_id: str, match_id: str, text: str) -> None:
    """
    Send a message as sender_id into match_id by calling POST /messages/{match_id}.

    The receiver is resolved by the API as the other member of the match.
    """
    path = f"/messages/{match_id}"
    api_url = f"http://localhost:{settings.api_port}{path}"
    body = json.dumps({"text": text}).encode("utf-8")
    timestamp = int(time.time())
    headers = {
        "Content-Type": "application/json",
        "X-User-Id": sender_id,
        "X-Timestamp": str(timestamp),
        "X-Signature": sign_request(sender_id, timestamp, "POST", path, body),
    }

    async with httpx.AsyncClient() as client:
        try:
            response = await client.post(api_url, content=body, headers=headers, timeout=10.0)
            response.raise_for_status()

            result = response.json()
            print("✅ Message sent successfully!")
            print(f"   Message id: {result.get('id')}")
            print(f"   Receiver: {result.get('receiver_id')}")

        except httpx.HTTPStatusError as e:
            print(f"❌ HTTP error: {e.response.status_code}")
            print(f"   Response: {e.response.text}")
        except httpx.HTTPError as e:
            print(f"❌ Error: {e}")


def main() -> None:
    """Main entry point."""
    if len(sys.argv) < 4:
        print("Usage: python send_test_message.py <sender_id> <match_id> <message>")
        print('Example: python send_test_message.py alice alice_bob "Hi there!"')
        sys.exit(1)

    sender_id, match_id = sys.argv[1], sys.argv[2]
    message_text = " ".join(sys.argv[3:])
    print(f"🤖 Sending message from {sender_id} into {match_id}: '{message_text}'")

    asyncio.run(send_message(sender_id, match_id, message_text))


if __name__ == "__main__":
    main()
