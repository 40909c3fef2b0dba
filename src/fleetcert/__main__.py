"""Allow ``python -m fleetcert``."""

from fleetcert.cli.main import main

main()
