from __future__ import annotations

"""
Exception types raised by the datasource pipeline.

- ConfigurationError: the datasource (or a field it relies on) is set up wrong.
- NotFoundError: a section or field referenced by id does not exist.
- PageNotFoundError: a redirect flag escalated an empty/required/forbidden
  condition; callers render a "not found" response rather than crash.
"""


class SectionSourceError(Exception):
    pass


class ConfigurationError(SectionSourceError):
    pass


class NotFoundError(SectionSourceError):
    pass


class PageNotFoundError(SectionSourceError):
    pass
