from __future__ import annotations

"""Local stand-in for a rollup node's ``/gio`` endpoint.

Run this, then point a relay at it:

    python examples/local-rollup/rollup_stub.py
    ROLLUP_HTTP_SERVER_URL=http://127.0.0.1:5004 gio-relay
"""

from gio_relay import DirectDispatch, Settings, create_app

app = create_app(Settings(dispatch=DirectDispatch()))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("rollup_stub:app", host="127.0.0.1", port=5004, reload=False)
