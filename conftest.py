# Ensure tests import the in-tree package first, even when an installed
# copy of streamui is present on the path.
import os
import sys

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)
