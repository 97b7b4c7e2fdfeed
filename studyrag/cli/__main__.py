import sys

from studyrag.cli.main import main

sys.exit(main())
