#!/usr/bin/env python3
"""
Script to generate a table session through the API and render its QR code.
The QR code contains the customer link: <CUSTOMER_APP_URL>/s/{session_token}/{table_number}
"""
import argparse
import sys
from pathlib import Path

import httpx
import qrcode

# Configuration
BASE_URL = "http://localhost:8000"  # Change this to your backend URL


def login(client: httpx.Client, email: str, password: str) -> str:
    """Log in as a staff member and return the access token."""
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    if response.is_error:
        print(f"✗ Login failed: {response.status_code}")
        print(f"  {response.json().get('message', response.text)}")
        sys.exit(1)
    body = response.json()
    print(f"✓ Logged in as {body['user']['email']} ({body['user']['role']})")
    return body["accessToken"]


def create_session(client: httpx.Client, token: str, table_number: int) -> dict:
    """
    Generate the session of a table via POST request.

    Returns:
        The session, including its token and QR link
    """
    print(f"Generating session for table {table_number}...")
    response = client.post(
        "/api/table-session/generate",
        json={"tableNumber": table_number},
        headers={"Authorization": f"Bearer {token}"},
    )
    if response.status_code == 409:
        print(f"✗ {response.json()['message']}")
        sys.exit(1)
    if response.is_error:
        print(f"✗ Error creating session: {response.status_code}")
        print(f"  Response: {response.text!s}")
        sys.exit(1)

    session = response.json()["session"]
    print(f"✓ Session created successfully!")
    print(f"  Session ID: {session['id']}")
    print(f"  Expires at: {session['expiresAt']}")
    return session


def generate_qr_code(qr_link: str, filename: str) -> str:
    """Render ``qr_link`` into qr_codes/<filename> and return the path."""
    print(f"\nGenerating QR code for: {qr_link}")

    qr_dir = Path("qr_codes")
    qr_dir.mkdir(exist_ok=True)

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(qr_link)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    output_path = qr_dir / Path(filename).name
    img.save(output_path)

    print(f"✓ QR code saved to: {output_path}")
    return str(output_path)


def main():
    """Main function to create session and generate QR code."""
    parser = argparse.ArgumentParser(
        description="Generate a table session and its QR code"
    )
    parser.add_argument("table_number", type=int, help="Table to open a session for")
    parser.add_argument("--email", required=True, help="Staff email (waiter, manager or admin)")
    parser.add_argument("--password", required=True, help="Staff password")
    parser.add_argument(
        "--base-url",
        type=str,
        default=BASE_URL,
        help=f"Backend base URL (default: {BASE_URL})"
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Output file name for the QR image (default: table_{n}_qr.png)"
    )
    args = parser.parse_args()

    try:
        with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
            token = login(client, args.email, args.password)
            session = create_session(client, token, args.table_number)
    except httpx.RequestError as e:
        print(f"✗ Request error: {e}")
        sys.exit(1)

    qr_path = generate_qr_code(
        session["qrLink"],
        args.output or f"table_{args.table_number}_qr.png",
    )

    print(f"\n✓ Done! Session created and QR code generated.")
    print(f"  Link: {session['qrLink']}")
    print(f"  QR Code: {qr_path}")


if __name__ == "__main__":
    main()
