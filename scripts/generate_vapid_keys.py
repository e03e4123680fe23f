#!/usr/bin/env python3
"""Generate a VAPID key pair for web push notifications.

Prints the values in the base64url formats the application expects:
VAPID_PRIVATE_KEY is the raw 32-byte P-256 scalar and VAPID_PUBLIC_KEY the
65-byte uncompressed point browsers pass to PushManager.subscribe().

Usage:
    python scripts/generate_vapid_keys.py [mailto:you@example.com]
"""

import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.services.vapid import VapidIdentity


def main() -> None:
    subject = sys.argv[1] if len(sys.argv) > 1 else "mailto:hello@ourjourney.app"
    identity = VapidIdentity.generate(subject)

    print(f"VAPID_PRIVATE_KEY={identity.private_key_b64}")
    print(f"VAPID_PUBLIC_KEY={identity.public_key_b64}")
    print(f"VAPID_SUBJECT={subject}")


if __name__ == "__main__":
    main()
