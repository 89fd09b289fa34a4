"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from medledger.config import MAX_UPLOAD_BYTES, TOKEN_EXPIRY_HOURS
from medledger.database import LedgerStore, init_engine
from medledger.gateway import TransactionGateway
from medledger.storage import init_content_store
from medledger.api.routes import register_routes


def create_app(gateway=None, content_store=None):
    """Build and return a fully configured Flask application.

    Collaborators that are not passed in are built from the environment.
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_BYTES
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if gateway is None:
            print("[init] Loading ledger...")
            gateway = TransactionGateway.from_store(LedgerStore(init_engine()))

        if content_store is None:
            print("[init] Initializing content store...")
            content_store = init_content_store()

        print("[init] ✓ Relay ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, gateway, content_store)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("MedLedger – REST Relay")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "5000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask relay on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] Session expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/api/auth/login")
    print(f"  - POST http://{host}:{port}/api/register")
    print(f"  - POST http://{host}:{port}/api/grants")
    print(f"  - POST http://{host}:{port}/api/records/upload")
    print(f"  - GET  http://{host}:{port}/api/records/<patient>")
    print(f"  - POST http://{host}:{port}/api/prescriptions")
    print(f"  - POST http://{host}:{port}/api/prescriptions/<id>/dispense")
    print(f"  - POST http://{host}:{port}/api/prescriptions/<id>/approve")
    print(f"  - GET  http://{host}:{port}/api/ledger/verify")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
