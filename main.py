# Simple local runner. Installed deployments should start with:
#   clipbot
import sys

from clipbot.bot import main

if __name__ == "__main__":
    sys.exit(main())
