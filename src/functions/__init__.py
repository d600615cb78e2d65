from src.functions.cors import FunctionResponse, cors_headers, invoke_with_cors
from src.functions.handlers import ROUTES, FunctionContext
from src.functions.server import FunctionsHTTPServer, dispatch, run_functions_server

__all__ = [
    "FunctionResponse",
    "cors_headers",
    "invoke_with_cors",
    "ROUTES",
    "FunctionContext",
    "FunctionsHTTPServer",
    "dispatch",
    "run_functions_server",
]
