"""Allow running quotadash with `python -m quotadash`."""

from quotadash.app import main

raise SystemExit(main())
