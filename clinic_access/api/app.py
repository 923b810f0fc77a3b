"""
Flask application factory and server entry-point.
"""

import sys
import traceback
from typing import Optional

from flask import Flask
from flask_cors import CORS

from clinic_access.config import (
    API_HOST,
    API_PORT,
    FLASK_ENV,
    SEED_DEMO_DATA,
    SEED_FIXTURE_PATH,
    configure_logging,
)
from clinic_access.rbac import AccessControl
from clinic_access.seed import load_demo_data, load_fixture
from clinic_access.api.routes import register_routes


def create_app(access: Optional[AccessControl] = None) -> Flask:
    """
    Build and return a fully configured Flask application.

    When *access* is None a fresh AccessControl is created and seeded from
    SEED_FIXTURE_PATH or, if SEED_DEMO_DATA is on, the demo clinic.
    """
    app = Flask(__name__)
    CORS(app)

    if access is None:
        access = AccessControl()
        try:
            if SEED_FIXTURE_PATH:
                print(f"[init] Loading fixture {SEED_FIXTURE_PATH}...")
                load_fixture(access, SEED_FIXTURE_PATH)
            elif SEED_DEMO_DATA:
                print("[init] Seeding demo clinic data...")
                load_demo_data(access)
        except Exception as e:
            print(f"[FATAL] Failed to seed access data: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    register_routes(app, access)
    return app


def main():
    """Run the development server."""
    configure_logging()

    print("=" * 60)
    print("Clinic Access – Roles & Permissions API")
    print("=" * 60)

    app = create_app()
    debug = FLASK_ENV == "development"

    print(f"\n[server] Starting Flask API on {API_HOST}:{API_PORT}")
    print(f"[server] Debug mode: {debug}")
    print("\nAPI Endpoints:")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/catalog")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/roles")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/groups")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/users")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/users/<id>/permissions")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/reports/access-review")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/health")
    print("\n" + "=" * 60)

    app.run(host=API_HOST, port=API_PORT, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
