"""
Standalone command-line tools: single-PDF index build and index search.
"""
