from .config import FunctionConfig, FunctionConfigDict
from .function import LAMBDA_FUNCTION, materialize_function

__all__ = [
    "LAMBDA_FUNCTION",
    "FunctionConfig",
    "FunctionConfigDict",
    "materialize_function",
]
