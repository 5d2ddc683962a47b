# server/tools/files.py
import logging
from dataclasses import asdict
from typing import Any, Dict

from pydantic import BaseModel, Field
from fastmcp import FastMCP

from panelfs.logging import log_call
from panelfs.models import TextContent
from panelfs.services.paths import client_path

logger = logging.getLogger(__name__)


class FsWriteIn(BaseModel):
    path: str = Field(..., min_length=1, description="Path relative to the file manager root")
    content: str = Field(..., description="UTF-8 text content; replaces the whole file")


class FsReadIn(BaseModel):
    path: str = Field(..., min_length=1, description="Path relative to the file manager root")


class FsListIn(BaseModel):
    path: str = Field("/", description="Directory relative to the file manager root")


class FsCreateIn(BaseModel):
    path: str = Field(..., description="Parent directory relative to the file manager root")
    name: str = Field(..., description="New file or folder name (no separators)")
    type: str = Field(..., description="'file' or 'folder'")


def register_file_tools(mcp: FastMCP, resolver, file_service):
    """
    Very thin tool adapters:
    - validate/deserialize inputs (Pydantic)
    - resolve the path (sandbox) and call the service
    - return the result
    """

    @mcp.tool(name="fs_read", description="Read a file under the file manager root")
    def fs_read(input: FsReadIn) -> Dict[str, Any]:
        log_call(logger, "fs_read", input.model_dump())
        result = file_service.read(resolver.resolve(input.path), for_viewing=True)
        if isinstance(result, TextContent):
            return {"content": result.content, "writable": result.writable, "path": client_path(input.path)}
        # Binary files are not inlined over MCP
        return {
            "content": None,
            "path": client_path(input.path),
            "mimeType": result.mime_type,
            "size": result.size_bytes,
        }

    @mcp.tool(name="fs_write", description="Overwrite (or create) a text file under the file manager root")
    def fs_write(input: FsWriteIn) -> Dict[str, Any]:
        log_call(logger, "fs_write", input.model_dump())
        file_service.write(resolver.resolve(input.path), input.content)
        return {"success": True, "message": "File saved successfully."}

    @mcp.tool(name="fs_list", description="List a directory under the file manager root")
    def fs_list(input: FsListIn) -> Dict[str, Any]:
        log_call(logger, "fs_list", input.model_dump())
        entries = file_service.list_dir(resolver.resolve(input.path))
        return {"path": client_path(input.path), "files": [asdict(e) for e in entries]}

    @mcp.tool(name="fs_create", description="Create an empty file or a folder in a directory")
    def fs_create(input: FsCreateIn) -> Dict[str, Any]:
        log_call(logger, "fs_create", input.model_dump())
        file_service.create_item(resolver.resolve(input.path), input.name, input.type)
        label = "File" if input.type == "file" else "Folder"
        return {"success": True, "message": f'{label} "{input.name}" created successfully.'}
