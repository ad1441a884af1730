from typing import Any

import fastapi
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from serde import SerdeError, from_dict, to_dict

from filesystem.fs_operations import FSOperations
from filesystem.models import FileUpdate, RenameRequest, TruncateRequest
from namespace.errors import FsError

PREFIX = "/filesystem"


class APIHandler:
    ops: FSOperations

    def __init__(self, ops: FSOperations):
        self.router = APIRouter()
        self.ops = ops
        self.router.add_api_route(PREFIX + "/upload", self.upload, methods=["POST"])
        self.router.add_api_route(PREFIX + "/update", self.update, methods=["POST"])
        self.router.add_api_route(PREFIX + "/update", self.truncate, methods=["PATCH"])
        self.router.add_api_route(PREFIX + "/attributes", self.attributes, methods=["GET"])
        self.router.add_api_route(PREFIX + "/list", self.list_directory, methods=["GET"])
        self.router.add_api_route(PREFIX + "/file", self.get_file, methods=["GET"])
        self.router.add_api_route(PREFIX + "/file", self.rename, methods=["PATCH"])
        self.router.add_api_route(PREFIX + "/file", self.remove_file, methods=["DELETE"])
        self.router.add_api_route(PREFIX + "/file/temp", self.open_file, methods=["POST"])
        self.router.add_api_route(PREFIX + "/file/temp", self.release_file, methods=["DELETE"])
        self.router.add_api_route(PREFIX + "/directory", self.create_directory, methods=["POST"])
        self.router.add_api_route(PREFIX + "/directory", self.remove_directory, methods=["DELETE"])
        self.router.add_api_route("/healthcheck", self.healthcheck, methods=["GET"])

    async def upload(self, path: str, request: Request) -> dict[str, str]:
        data = await request.body()
        await self.ops.upload_file(path, data)
        return {"message": f"Uploaded the file successfully: {path}"}

    async def update(self, body: dict[str, Any]) -> dict[str, int]:
        update = from_dict(FileUpdate, body)
        written = await self.ops.write_at(update.path, update.payload(), update.offset)
        return {"written": written}

    async def truncate(self, body: dict[str, Any]) -> None:
        request = from_dict(TruncateRequest, body)
        await self.ops.truncate(request.path, request.size)

    async def attributes(self, path: str) -> dict[str, Any]:
        return to_dict(await self.ops.stat(path))

    async def list_directory(self, path: str = "/") -> list[str]:
        return await self.ops.list_directory(path)

    async def get_file(self, path: str) -> Response:
        data = await self.ops.read_file(path)
        filename = path.rstrip("/").rsplit("/", 1)[-1]
        return Response(content=data, media_type="application/octet-stream",
                        headers={"Content-Disposition": f'attachment; filename="{filename}"'})

    async def rename(self, body: dict[str, Any]) -> None:
        request = from_dict(RenameRequest, body)
        await self.ops.rename(request.old_path, request.new_path, request.replace)

    async def remove_file(self, path: str) -> None:
        await self.ops.delete(path)

    async def open_file(self, path: str) -> None:
        await self.ops.open_for_write(path)

    async def release_file(self, path: str) -> None:
        await self.ops.release_write(path)

    async def create_directory(self, path: str) -> dict[str, str]:
        await self.ops.create_directory(path)
        return {"message": f"Created dir successfully: {path}"}

    async def remove_directory(self, path: str) -> None:
        await self.ops.delete_directory(path)

    async def healthcheck(self) -> str:
        return "ok"


async def fs_error_handler(request: Request, exc: FsError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})


async def bad_body_handler(request: Request, exc: SerdeError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": f"Malformed request body: {exc}"})


def create_app(ops: FSOperations) -> fastapi.FastAPI:
    app = fastapi.FastAPI()
    app.include_router(APIHandler(ops).router)
    app.add_exception_handler(FsError, fs_error_handler)
    app.add_exception_handler(SerdeError, bad_body_handler)
    return app
