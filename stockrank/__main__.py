import sys

from stockrank.client.cli import main

sys.exit(main())
