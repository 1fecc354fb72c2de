"""
Root entrypoint; run with:
    uvicorn main:app --reload
    or:  uv run uvicorn main:app --reload
"""

from device_portal.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
