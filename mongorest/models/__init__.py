from .options import CollectionOptions, DateFields
from .response import BulkInsertedResponse, DeletedResponse, ErrorResponse, InsertedResponse, ModifiedResponse

__all__ = [
    "BulkInsertedResponse",
    "CollectionOptions",
    "DateFields",
    "DeletedResponse",
    "ErrorResponse",
    "InsertedResponse",
    "ModifiedResponse",
]
