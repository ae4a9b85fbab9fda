#!/usr/bin/env python3
"""
Generate a secret key for signing AnalogyAI access tokens.
Run this script and put the value in SECRET_KEY (environment or backend/.env).
"""

import secrets

if __name__ == "__main__":
    secret_key = secrets.token_urlsafe(32)
    print("\nGenerated SECRET_KEY:")
    print(f"SECRET_KEY={secret_key}\n")
    print("Keep this value out of version control. Rotating it signs every user out.\n")
