"""
wikidist crawler

Builds the link graph of a MediaWiki encyclopedia by following article links
through the MediaWiki API.
"""

__version__ = "1.0.0"
__description__ = "Concurrent link graph crawler for MediaWiki encyclopedias"
