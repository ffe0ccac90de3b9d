"""`python -m mvdctl deploy|teardown [options]`."""

from __future__ import annotations

import sys

from .cli import deploy, teardown

COMMANDS = {'deploy': deploy, 'teardown': teardown}


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        print("usage: python -m mvdctl {deploy,teardown} [options]", file=sys.stderr)
        sys.exit(2)
    COMMANDS[sys.argv[1]](sys.argv[2:])


if __name__ == '__main__':
    main()
