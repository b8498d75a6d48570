"""Test configuration for ensuring ``forum_directory`` imports from a checkout."""

import os
import sys

# Put the repository root on ``sys.path`` so the tests run without installing
# the package first, the same as ``python -m pytest`` from the root would.
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)
