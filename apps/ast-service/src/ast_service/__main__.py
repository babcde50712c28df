from __future__ import annotations

import os

import uvicorn


def main() -> None:
    host = os.getenv("AST_SERVICE_HOST", "0.0.0.0")
    port = int(os.getenv("AST_SERVICE_PORT", "8110"))
    uvicorn.run("ast_service.app:create_app", factory=True, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
