#!/usr/bin/env python
"""Generate the actor's RSA key pair.

Usage:
    uv run python scripts/generate_keypair.py                 # private.pem / public.pem
    uv run python scripts/generate_keypair.py --bits 4096 --out-dir /keys
"""

import argparse
import sys
from pathlib import Path

# Add parent to path for fedisign imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fedisign.auth.errors import KeyGenerationError
from fedisign.auth.keys import MIN_KEY_BITS, KeyStore
from fedisign.config import get_settings


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Generate the actor RSA key pair")
    parser.add_argument(
        "--bits",
        type=int,
        default=settings.key_bits,
        help=f"RSA key size (minimum {MIN_KEY_BITS}, default: {settings.key_bits})",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Write private.pem and public.pem here instead of the configured paths",
    )
    parser.add_argument("--force", action="store_true", help="Overwrite existing key files")
    args = parser.parse_args(argv)

    if args.out_dir is not None:
        private_path = args.out_dir / "private.pem"
        public_path = args.out_dir / "public.pem"
    else:
        private_path = settings.private_key_path
        public_path = settings.public_key_path

    existing = [p for p in (private_path, public_path) if p.exists()]
    if existing and not args.force:
        names = ", ".join(str(p) for p in existing)
        print(f"Refusing to overwrite {names} (use --force)", file=sys.stderr)
        return 1

    try:
        KeyStore(private_path, public_path).create(args.bits)
    except KeyGenerationError as e:
        print(f"Key generation failed: {e}", file=sys.stderr)
        return 1

    print(f"Wrote {private_path}")
    print(f"Wrote {public_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
