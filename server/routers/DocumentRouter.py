from fastapi import APIRouter, File, Request, UploadFile

from shared.errors import DocumentNotFound, InvalidDocument
from server.models.responses import DeleteDocumentResponse, PointsResponse, UploadResponse

router = APIRouter(tags=["documents"])


@router.post("/upload-file")
async def upload_file(request: Request, file: UploadFile | None = File(None)) -> UploadResponse:
    """Upload or re-upload a plain-text document.

    Re-uploading a file with the same name replaces the document and drops
    all cached chunks, cached answers and vectors of the previous version.

    Args:
        request (Request): FastAPI request (provides app.state.document_service).
        file (UploadFile | None): Multipart file field "file".

    Returns:
        UploadResponse: Summary of the stored document.
    """
    if file is None or not file.filename:
        raise InvalidDocument("No file uploaded")
    data = await file.read()
    document_service = request.app.state.document_service
    return await document_service.upload(file.filename, data, content_type=file.content_type)


@router.delete("/documents/{filename}")
async def delete_document(request: Request, filename: str) -> DeleteDocumentResponse:
    document_service = request.app.state.document_service
    return await document_service.delete(filename)


@router.get("/documents/{filename}/points")
async def list_document_points(request: Request, filename: str) -> PointsResponse:
    """List the vector payloads stored for a document, ordered by chunk index."""
    storage = request.app.state.storage
    document_id = storage.resolve_document_id(filename)
    if not await storage.exists(document_id):
        raise DocumentNotFound(f"Document '{filename}' not found.")
    points = await request.app.state.vector_sync.list_points(document_id)
    return PointsResponse(message="Vector points", filename=document_id, total=len(points), points=points)
