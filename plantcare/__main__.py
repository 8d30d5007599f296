import sys

from plantcare.cli import main

sys.exit(main())
