"""
Shot List Service - HTTP service that lays out storyboard shots into a PDF.

Accepts parallel lists of image URLs, scenes, framing sizes and descriptions,
groups shots by scene, paginates them into a grid or flow layout, and
publishes the finished PDF under a static URL.
"""

__version__ = "0.1.0"
