import sys

from repeat_extender.main import main

sys.exit(main())
