"""Pylon messaging relay client — delivers sales alerts to chat channels."""

import sys

import requests

PYLON_BASE_URL = 'https://api.usepylon.com/v1'


class PylonClient:
    def __init__(self, token=None, timeout=15, base_url=PYLON_BASE_URL):
        self.token = token
        self.timeout = timeout
        self.base_url = base_url

    @classmethod
    def from_settings(cls, settings):
        return cls(token=settings.pylon_token, timeout=settings.request_timeout)

    def send_message(self, channel, destination, text):
        """
        Post a message to the relay.

        Returns the delivery reference on success, or None on any failure
        (missing token, non-2xx, timeout, network error).
        """
        if not self.token:
            print("[pylon] Token not configured, message not sent", file=sys.stderr)
            return None

        try:
            resp = requests.post(
                f'{self.base_url}/messages',
                json={'channel': channel, 'destination': destination, 'text': text},
                headers={
                    'Authorization': f'Bearer {self.token}',
                    'Content-Type': 'application/json',
                },
                timeout=self.timeout,
            )
            if not 200 <= resp.status_code < 300:
                print(f"[pylon] API returned {resp.status_code}: {resp.text[:200]}", file=sys.stderr)
                return None

            data = resp.json()
            if not isinstance(data, dict):
                data = {}
            ref = data.get('id') or data.get('reference')
            # A 2xx without a reference still counts as delivered
            return str(ref) if ref else 'delivered'
        except requests.exceptions.Timeout:
            print("[pylon] Request timed out", file=sys.stderr)
            return None
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"[pylon] Delivery failed: {e}", file=sys.stderr)
            return None
