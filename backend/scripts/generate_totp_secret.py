"""
Generate an ADMIN_TOTP_SECRET and its enrolment QR code.

Same material as POST /admin/2fa/setup, for operators enabling the second
factor before the first login.

Usage:
    python scripts/generate_totp_secret.py --account admin --qr totp.png
"""

import argparse
import base64
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from quizfest.services.two_factor import TwoFactorVerifier  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a TOTP secret for the admin account")
    parser.add_argument("--account", default="admin", help="Account name shown in the authenticator app")
    parser.add_argument("--issuer", default="Quiz Fest Admin", help="Issuer shown in the authenticator app")
    parser.add_argument("--qr", type=Path, help="Write the QR code PNG to this file")
    args = parser.parse_args()

    provisioning = TwoFactorVerifier(issuer=args.issuer).build_provisioning(args.account)

    print(f"ADMIN_TOTP_SECRET={provisioning.secret}")
    print(f"Provisioning URI: {provisioning.provisioning_uri}")

    if args.qr:
        png = base64.b64decode(provisioning.qr_code_image.split(",", 1)[1])
        args.qr.write_bytes(png)
        print(f"QR code written to: {args.qr}")


if __name__ == "__main__":
    main()
