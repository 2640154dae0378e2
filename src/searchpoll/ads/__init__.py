"""Side-channel ad providers.

The ad service is an external collaborator; only its interface is consumed.
"""

from searchpoll.ads.base import AdProvider
from searchpoll.ads.http import HttpAdProvider

__all__ = ["AdProvider", "HttpAdProvider"]
