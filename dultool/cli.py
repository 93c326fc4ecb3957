"""
dultool Command Line Interface.

    dultool sign <in-file|-> <out-file|->
    dultool validate <in-file|-> <out-file|->

Settings come from environment variables (see ``dultool.config``). Exit
status is 0 on success and 1 on any error; the output only ever receives a
complete token or a verified payload.
"""

import argparse
import logging
import sys
from typing import BinaryIO, List, Optional

from dultool.config import (
    TrustConfig,
    get_consumer_mode,
    get_jku_url,
    get_jwk_path,
    get_producer_id,
    get_producer_level,
)
from dultool.errors import DulError
from dultool.keys import load_private_key
from dultool.policy import ProducerLevel
from dultool.signer import Signer
from dultool.verifier import Verifier

logger = logging.getLogger(__name__)

ENVIRONMENT_HELP = """\
When the "sign" command is used the following environment variables apply:
  PRODUCER_LEVEL: 1 (unsigned), 2 (HMAC) or 3 (RSA), default 3
  PRODUCER_ID:    the unique ID of the producer, supplied by Crossref
  JWK:            path to the RSA private key file (level 3)
  JKU_URL:        URL of the published public key set (level 3)

When the "validate" command is used:
  CONSUMER_LEVEL: strict or relaxed, default strict
"""


class _Parser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:
        self.print_help(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def read_input(path: str) -> bytes:
    """Read all of ``path``, or stdin for ``-``."""
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def write_output(path: str, data: bytes) -> None:
    """Write ``data`` to ``path``, or stdout for ``-``."""
    if path == "-":
        out: BinaryIO = sys.stdout.buffer
        out.write(data)
        out.flush()
        return
    with open(path, "wb") as f:
        f.write(data)


def cmd_sign(args: argparse.Namespace, config: TrustConfig) -> int:
    """Sign the input at PRODUCER_LEVEL as PRODUCER_ID."""
    level = get_producer_level()
    producer_id = get_producer_id()
    if not producer_id:
        print("Error: PRODUCER_ID not supplied", file=sys.stderr)
        return 1

    payload = read_input(args.infile)

    private_key = None
    key_location = None
    if level is ProducerLevel.PUBLISHED_KEY:
        private_key = load_private_key(get_jwk_path())
        key_location = get_jku_url()

    token = Signer(config).sign(
        level, producer_id, payload, private_key=private_key, key_location=key_location
    )
    write_output(args.outfile, token)
    return 0


def cmd_validate(args: argparse.Namespace, config: TrustConfig) -> int:
    """Validate the input under CONSUMER_LEVEL and emit its payload."""
    mode = get_consumer_mode()
    token = read_input(args.infile)

    payload, issuer = Verifier(config).verify(token, mode).unwrap()
    logger.info(f"Validated token from {issuer} ({mode.value})")

    write_output(args.outfile, payload)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = _Parser(
        prog='dultool',
        description='Sign and validate producer/consumer tokens',
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')
    parser.add_argument('command', choices=['sign', 'validate'], help='Operation to perform')
    parser.add_argument('infile', help='Path of input file or - for STDIN')
    parser.add_argument('outfile', help='Path of output file or - for STDOUT')

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        config = TrustConfig.from_env()
        if args.command == 'sign':
            return cmd_sign(args, config)
        return cmd_validate(args, config)
    except DulError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: File does not exist: {e.filename}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error with input or output: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
