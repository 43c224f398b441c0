# api/index.py
# Serverless entry point: puts the project root on sys.path and exports the tree API.
import sys
import os

# Walk up from api/ to project root
root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, root)

from treeview.main import app  # the platform picks up `app`
