#!/usr/bin/env python3
"""
Books admin dashboard.

Serves the session-guarded dashboard in front of the books/authors REST API.
"""

import argparse
import getpass
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep dashboard imports lazy (inside functions) so `--help` works without
# the web stack installed.
#


def check_backend(email: str, password: str) -> int:
    """Log in against the backend and print the resulting profile (smoke test for API_URL)."""
    from bookadmin.auth.config import load_config
    from bookadmin.core.models import LoginCredentials
    from bookadmin.providers.api_client import ApiError, create_client
    from bookadmin.providers.auth_provider import login
    from bookadmin.providers.users_provider import get_current_user

    cfg = load_config()
    try:
        auth = login(cfg, LoginCredentials(email=email, password=password))
        user = get_current_user(create_client(cfg, auth.token_key))
    except ApiError as e:
        print(f"Backend check failed ({cfg.base_url}): {e}", file=sys.stderr)
        return 1

    print(json.dumps({"ok": True, "backend": cfg.base_url, "user": user.model_dump()}, indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Books admin dashboard")
    parser.add_argument("--serve", action="store_true", help="Run the dashboard HTTP server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=3000, help="Bind port (default: 3000)")
    parser.add_argument(
        "--check-backend",
        metavar="EMAIL",
        help="Log in to the backend as EMAIL (password prompted) and print the profile",
    )

    args = parser.parse_args()

    if args.serve:
        from bookadmin.api.dashboard import run

        run(host=args.host, port=args.port)
        return

    if args.check_backend:
        password = getpass.getpass(f"Password for {args.check_backend}: ")
        sys.exit(check_backend(args.check_backend, password))

    parser.print_help()


if __name__ == "__main__":
    main()
