from __future__ import annotations

import argparse
import json

import httpx


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send one completion request to a running gio-relay")
    parser.add_argument("--url", default="http://127.0.0.1:8080")
    parser.add_argument("--path", default="/completion", choices=["/completion", "/v1/chat/completions"])
    parser.add_argument("--body", default=json.dumps({"prompt": "hello gio"}))
    return parser


def main() -> None:
    args = build_parser().parse_args()
    url = f"{args.url.rstrip('/')}{args.path}"
    payload = args.body.encode("utf-8")

    print("sent", url, payload.hex(), flush=True)
    response = httpx.post(url, content=payload, timeout=None)
    print("recv", response.status_code, response.text, flush=True)


if __name__ == "__main__":
    main()
