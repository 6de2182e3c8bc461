# SPDX-FileCopyrightText: 2025-present DouglasMacKrell <d.mackrell@gmail.com>
#
# SPDX-License-Identifier: MIT

"""ScrapeGnome - Media identification and metadata scraping queue."""

from scrapegnome.__about__ import __version__

__all__ = ["__version__"]
