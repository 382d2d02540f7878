"""Allow ``python -m skill_issue``."""

import sys

from skill_issue.main import main

if __name__ == "__main__":
    sys.exit(main())
