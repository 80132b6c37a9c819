"""Webhook server entrypoint.

    python server.py
    gunicorn server:app
"""

import os
import sys

from eventintel.server import create_app

app = create_app()


if __name__ == "__main__":
    # Railway sets PORT; WEBHOOK_PORT is for local dev; fallback to 3000
    port = int(os.getenv("PORT", os.getenv("WEBHOOK_PORT", 3000)))
    print(f"Event intelligence webhook server starting on port {port}...", file=sys.stderr)
    app.run(host="0.0.0.0", port=port)
