from fastapi import APIRouter
from fastapi.responses import FileResponse, HTMLResponse
from pathlib import Path
from typing import Optional, Union

INDEX_DOCUMENT = "index.html"
NOT_FOUND_BODY = "<h1>404 Not Found</h1>"

CONTENT_TYPES = {
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.json': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
    '.wav': 'audio/wav',
    '.mp3': 'audio/mpeg',
}

def content_type_for(path: Union[str, Path]) -> str:
    return CONTENT_TYPES.get(Path(path).suffix.lower(), 'text/plain')

def resolve_static_file(root: Union[str, Path], request_path: str) -> Optional[Path]:
    """Map a URL path onto a file under root; None when missing or outside root"""
    relative = request_path.lstrip('/') or INDEX_DOCUMENT
    base = Path(root).resolve()
    candidate = (base / relative).resolve()
    if base != candidate and base not in candidate.parents:
        return None
    if not candidate.is_file():
        return None
    return candidate

def not_found_response() -> HTMLResponse:
    return HTMLResponse(NOT_FOUND_BODY, status_code=404)

def create_static_router(static_dir: Union[str, Path]) -> APIRouter:
    """Catch-all GET route; must be included after every API route"""
    router = APIRouter()

    @router.get("/{file_path:path}", include_in_schema=False)
    async def serve_static(file_path: str):
        resolved = resolve_static_file(static_dir, file_path)
        if resolved is None:
            return not_found_response()
        return FileResponse(resolved, media_type=content_type_for(resolved))

    return router
