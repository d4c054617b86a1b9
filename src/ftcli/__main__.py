"""Allow ``python -m ftcli``."""

from .cli import main

raise SystemExit(main())
