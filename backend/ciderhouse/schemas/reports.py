"""
Report Schemas
Generated documents
"""

from pydantic import BaseModel


class DocumentResponse(BaseModel):
    """Generated file, base64 encoded for download"""
    filename: str
    content_type: str
    data_base64: str
