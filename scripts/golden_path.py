#!/usr/bin/env python3
"""Golden path demo for coderaid (minimal raid worker loop)."""

from __future__ import annotations

import json
import os
import sys
from typing import Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


class HttpClient:
    def __init__(self, base_url: str, api_key: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            self.headers["X-Api-Key"] = api_key

    def request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        timeout: float = 10.0,
    ) -> Any:
        url = f"{self.base_url}{path}"

        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")

        req = Request(url, data=data, method=method)
        for key, value in self.headers.items():
            req.add_header(key, value)

        try:
            with urlopen(req, timeout=timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"{method} {url} failed: {exc.code} {exc.reason}: {detail}") from None

        if not raw:
            return None
        return json.loads(raw.decode("utf-8"))


def main() -> int:
    coderaid_url = _env("CODERAID_URL", "http://localhost:8000")
    api_key = _env("CODERAID_API_KEY")
    raid_name = _env("CODERAID_RAID", "golden-path-demo")
    rounds = int(_env("CODERAID_ROUNDS", "3"))

    client = HttpClient(coderaid_url, api_key=api_key)

    print("Checking health...")
    health = client.request_json("GET", "/health")
    if health.get("status") != "healthy":
        raise RuntimeError(f"Unexpected health response: {health}")

    print(f"Creating raid {raid_name!r}...")
    client.request_json("DELETE", "/raids", payload={"name": raid_name})
    raids = client.request_json("POST", "/raids", payload={"name": raid_name, "skip_count": 2})
    if raids[raid_name]["tried_code_count"] != 2:
        raise RuntimeError(f"Skip not applied: {raids}")

    tried: list[str] = []
    for _ in range(rounds):
        reservation = client.request_json("POST", f"/raids/{raid_name}/reserve_codes")
        codes = reservation.get("codes", [])
        print(f"Reserved {codes} until {reservation.get('expires_at')}")
        if not codes:
            break
        for code in codes:
            client.request_json("POST", f"/raids/{raid_name}/try_code", payload={"code": code})
            tried.append(code)

    if len(set(tried)) != len(tried):
        raise RuntimeError(f"Same code reserved twice: {tried}")

    summary = client.request_json("GET", "/raids")[raid_name]
    expected = 2 + len(tried)
    if summary["tried_code_count"] != expected:
        raise RuntimeError(f"Expected {expected} tried codes, got {summary}")

    client.request_json("DELETE", "/raids", payload={"name": raid_name})

    print(f"Golden path complete: {len(tried)} codes tried, summary {summary}.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise
