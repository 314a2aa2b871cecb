import sys

from fakescan.cli import main

sys.exit(main())
