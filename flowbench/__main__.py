"""
Allow running flowbench as a module:

    python -m flowbench <tool> [options]

Delegates to flowbench.cli:main().
"""
import sys
from .cli import main

sys.exit(main())
