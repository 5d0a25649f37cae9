"""
UTILITIES PACKAGE
=================

Helpers used by the services (no HTTP, no business logic):

  retry  - RetryPolicy plus flat and linear delay schedules.
  images - decode base64 / data-URL images, build data URLs.
"""
