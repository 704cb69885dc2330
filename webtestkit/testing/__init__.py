from webtestkit.testing.case import TestCase as TestCase
from webtestkit.testing.case import Thrown as Thrown
from webtestkit.testing.case import assert_exception_thrown as assert_exception_thrown
from webtestkit.testing.response import TestResponse as TestResponse
from webtestkit.testing.response import TooManyRedirects as TooManyRedirects
from webtestkit.testing.server import ServerGuard as ServerGuard
from webtestkit.testing.server import ServerStartError as ServerStartError

__all__ = [
    "ServerGuard",
    "ServerStartError",
    "TestCase",
    "TestResponse",
    "Thrown",
    "TooManyRedirects",
    "assert_exception_thrown",
]
