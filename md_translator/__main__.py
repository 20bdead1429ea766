import sys

from md_translator.cli import main

sys.exit(main())
