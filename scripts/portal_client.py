# scripts/portal_client.py
# Usage: python scripts/portal_client.py --email student@example.edu --password 'S3cure!Passw0rd'
import argparse
import os
import sys

import requests


API = os.environ.get("API", "http://127.0.0.1:5000")


parser = argparse.ArgumentParser()
parser.add_argument("--email", required=True)
parser.add_argument("--password", required=True)
parser.add_argument("--code", default=None, help="TOTP or backup code, prompted for if MFA is on")
args = parser.parse_args()

# cookies (session_token / mfa_pending_token) live on the Session
s = requests.Session()

# --- 1) password step ---
r = s.post(f"{API}/auth/signin", json={"email": args.email, "password": args.password}, timeout=10)
if r.status_code != 200:
    print("Sign-in failed:", r.status_code, r.json().get("error"))
    sys.exit(1)

# --- 2) MFA step, if challenged ---
if r.json().get("mfaRequired"):
    code = args.code or input("MFA code: ").strip()
    r = s.post(f"{API}/auth/mfa/validate", json={"token": code}, timeout=10)
    if r.status_code != 200:
        print("MFA failed:", r.status_code, r.json().get("error"))
        sys.exit(1)
print("Signed in as", r.json()["user"]["email"])

# --- 3) who am I, and what can I see ---
print("/auth/session:", s.get(f"{API}/auth/session", timeout=10).json())
r = s.get(f"{API}/grades", timeout=10)
print("/grades:", r.status_code)
print(r.text)

s.post(f"{API}/auth/signout", timeout=10)
