# conftest.py
import sys
import os

# project root on sys.path so tests can import isodin/ and main.py directly
ROOT = os.path.dirname(__file__)
sys.path.insert(0, ROOT)
