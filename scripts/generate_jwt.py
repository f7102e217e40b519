"""Issue an HS256 development token accepted by the teamhub backend.

Usage:
  export TH_JWT_SECRET=your-secret
  python scripts/generate_jwt.py --sub <user-uuid> --role CONTRIBUTOR

Project roles are not part of the token; they are resolved per request from
project memberships.
"""

from __future__ import annotations

import argparse
import base64
import hashlib
import hmac
import json
import os
import sys
import time
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.core.config import JWT_SECRET_ENV, load_env_if_present  # noqa: E402
from app.security.roles import SystemRole  # noqa: E402


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def issue_token(*, sub: str, role: SystemRole, secret: str, ttl_seconds: int) -> str:
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {"sub": sub, "role": role.value, "exp": int(time.time()) + ttl_seconds}

    segments = [
        _b64url(json.dumps(part, separators=(",", ":")).encode("utf-8")) for part in (header, payload)
    ]
    signing_input = ".".join(segments).encode("ascii")
    sig = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return ".".join([*segments, _b64url(sig)])


def main() -> int:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument("--sub", required=True, help="user id (UUID)")
    ap.add_argument("--role", required=True, choices=[r.value for r in SystemRole])
    ap.add_argument("--ttl-seconds", type=int, default=60 * 60 * 8)
    args = ap.parse_args()

    load_env_if_present()
    secret = os.environ.get(JWT_SECRET_ENV)
    if not secret:
        raise SystemExit(f"Missing {JWT_SECRET_ENV} in environment.")

    print(issue_token(sub=args.sub, role=SystemRole(args.role), secret=secret, ttl_seconds=args.ttl_seconds))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
