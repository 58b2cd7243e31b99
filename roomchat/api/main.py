from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

from roomchat.config import API_PORT
from roomchat.file_transfer.store import UploadStore
from roomchat.tcp_chat.errors import InvalidFilenameError

# Read-only view of the files uploaded through the chat server.
# Uploads themselves only happen over the TCP protocol.


def create_app(store: UploadStore | None = None) -> FastAPI:
    store = store or UploadStore()
    app = FastAPI(title="RoomChat API")

    @app.get("/")
    def root():
        return {"message": "RoomChat API is running", "upload_dir": str(store.upload_dir)}

    @app.get("/files/list")
    def list_files():
        """Return a list of uploaded files with basic info, newest first."""
        return {"files": store.list_files()}

    @app.get("/files/download/{filename}")
    def download_file(filename: str):
        try:
            path = store.path_for(filename)
        except InvalidFilenameError as e:
            raise HTTPException(status_code=400, detail=e.message)
        if not path.is_file():
            raise HTTPException(status_code=404, detail="File not found")

        return FileResponse(
            path,
            media_type="application/octet-stream",
            filename=filename,
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=API_PORT)
