import sys

from gifit import main

sys.exit(main())
