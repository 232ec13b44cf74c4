#!/usr/bin/env python3
"""
Smoke test for the JobHarvest API endpoints.
Usage:
  API_BASE=https://jobharvest.example.com/api/v1 python scripts/smoke_api.py
  python scripts/smoke_api.py  # defaults to http://localhost:8000/api/v1
"""
import json
import os
import sys
import urllib.error
import urllib.request


def main():
    base = os.environ.get("API_BASE", "http://localhost:8000/api/v1").rstrip("/")
    root = base.replace("/api/v1", "").rstrip("/")
    failed = []

    def request(url_path: str, *, method: str = "GET", use_root: bool = False):
        path = url_path if url_path.startswith("/") else "/" + url_path
        url = (root + path) if use_root else (base + path)
        req = urllib.request.Request(url, method=method, data=b"" if method == "POST" else None)
        try:
            with urllib.request.urlopen(req, timeout=130) as r:
                return r.status, json.loads(r.read() or b"{}")
        except urllib.error.HTTPError as e:
            return e.code, {}
        except Exception as e:
            print(f"  ERROR: {e}")
            return 0, {}

    def check(label: str, path: str, expected: int = 200, **kwargs):
        print(f"  {label} ...", end=" ")
        status, body = request(path, **kwargs)
        if status == expected:
            print("OK")
        else:
            print(f"FAIL ({status})")
            failed.append(path)
        return body

    print(f"Smoke testing API at {base}")

    check("GET /health", "/health", use_root=True)

    body = check("GET /sources", "/sources")
    names = [s["name"] for s in body.get("sources", [])]
    print(f"    {len(names)} sources")

    check("GET /test-scrapeability (no site)", "/test-scrapeability", expected=400)
    if names:
        body = check(f"GET /test-scrapeability?site={names[0]}", f"/test-scrapeability?site={names[0]}")
        print(f"    scrapable={body.get('scrapable')} technique={body.get('technique')}")

    body = check("GET /scrape-jobs?limit=5", "/scrape-jobs?limit=5")
    print(f"    {len(body.get('jobs', []))} jobs, fromCache={body.get('fromCache')}")

    check("GET /job-stats", "/job-stats")
    check("GET /performance", "/performance")
    check("POST /clear-cache", "/clear-cache", method="POST")

    if failed:
        print(f"\nFailed: {', '.join(failed)}")
        sys.exit(1)
    print("\nAll smoke checks passed.")
    sys.exit(0)


if __name__ == "__main__":
    main()
