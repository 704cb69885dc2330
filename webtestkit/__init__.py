from webtestkit.app import Framework as Framework
from webtestkit.request import Request as Request
from webtestkit.response import Response as Response

__all__ = ["Framework", "Request", "Response"]
