#!/usr/bin/env python3
"""
Generate a field encryption key for ENCRYPTION_KEY.
Run this and copy the output to your .env file (or your secret manager).
"""

from vetcepi.core.field_cipher import generate_key

if __name__ == "__main__":
    print("=" * 60)
    print("Medical Record Encryption Key Generator")
    print("=" * 60)
    print("\nGenerating a secure random 256-bit key...\n")

    key = generate_key()

    print(f"ENCRYPTION_KEY={key}")
    print("\n" + "=" * 60)
    print("Copy the line above to your .env file.")
    print("Changing the key makes existing medical history unreadable.")
    print("=" * 60)
