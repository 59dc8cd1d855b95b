"""Browser-side building blocks (Playwright).

``session`` owns the Chromium lifecycle, ``agents`` the user-agent policy,
``navigation`` and ``extract`` the page primitives, ``snapshot`` the
failure-only diagnostics capture, and ``captcha`` the CAPTCHA box state
machine.
"""
