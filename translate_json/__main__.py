import sys

from translate_json.cli import main

sys.exit(main())
