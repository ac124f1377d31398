"""
Command-line interface for the VSCO downloader.
"""
