#!/usr/bin/env python3
"""
Print a starter .env for the MedLedger relay, with a fresh JWT secret.
"""

import secrets

if __name__ == "__main__":
    print("# ── MedLedger relay settings ──")
    print(f"JWT_SECRET_KEY={secrets.token_hex(32)}")
    print("DB_URI=sqlite:///medledger.db")
    print("CONTENT_STORE=local")
    print("# CONTENT_STORE=pinata")
    print("# PINATA_API_KEY=")
    print("# PINATA_API_SECRET=")
