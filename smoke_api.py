#!/usr/bin/env python3
"""
Live smoke run of the front-desk queue API.

Walks one patient through the whole queue workflow against a running
server and reports every call.  Tokens come from the environment
(create them with ``manage.py drf_create_token <username>``):

    FRONTDESK_URL           base URL, default http://127.0.0.1:8000
    FRONTDESK_STAFF_TOKEN   token of a staff account
    FRONTDESK_ADMIN_TOKEN   token of an admin account (for the delete step)
    FRONTDESK_PATIENT_ID    patient to enqueue, default 1
"""
import json
import os
import sys
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests

BASE_URL = os.getenv("FRONTDESK_URL", "http://127.0.0.1:8000").rstrip("/")


@dataclass
class SmokeResult:
    success: bool
    endpoint: str
    method: str
    status_code: int
    response_time: float
    error_message: str = ""
    description: str = ""


class QueueSmokeRun:
    def __init__(self, staff_token: str, admin_token: Optional[str] = None):
        self.session = requests.Session()
        self.staff_headers = {"Authorization": f"Token {staff_token}"}
        self.admin_headers = {"Authorization": f"Token {admin_token}"} if admin_token else None
        self.results = []

    def call(self, method: str, endpoint: str, data: Optional[Dict] = None, expected_status: int = 200,
             description: str = "", headers: Optional[Dict] = None) -> Optional[Dict[str, Any]]:
        url = f"{BASE_URL}{endpoint}"
        start = time.time()
        try:
            if headers is None:
                headers = self.staff_headers
            response = self.session.request(method, url, json=data, headers=headers, timeout=10)
        except requests.RequestException as e:
            self.results.append(SmokeResult(False, endpoint, method, 0, time.time() - start, str(e), description))
            print(f"FAIL {method} {endpoint} - {e}")
            return None

        elapsed = time.time() - start
        ok = response.status_code == expected_status
        self.results.append(SmokeResult(ok, endpoint, method, response.status_code, elapsed,
                                        "" if ok else response.text[:200], description))
        print(f"{'ok  ' if ok else 'FAIL'} {method} {endpoint} -> {response.status_code} ({elapsed:.2f}s)")
        try:
            return response.json()
        except ValueError:
            return None

    def run(self, patient_id: int) -> bool:
        self.call("GET", "/healthz", description="health check")
        doctors = self.call("GET", "/api/queue/doctors", description="doctor dropdown") or {}
        doctor_ids = [d["id"] for d in doctors.get("data", [])]

        created = self.call("POST", "/api/queue", {
            "patientId": patient_id,
            "reasonForVisit": "smoke run",
            "doctorId": doctor_ids[0] if doctor_ids else None,
        }, 201, "enqueue patient")
        if not created:
            return False
        entry_id = created["data"]["id"]

        self.call("GET", f"/api/queue/{entry_id}", description="entry detail")
        if len(doctor_ids) > 1:
            self.call("POST", f"/api/queue/{entry_id}/transfer",
                      {"toDoctorId": doctor_ids[1], "reason": "smoke run"}, description="transfer")
        self.call("GET", f"/api/queue/{entry_id}/transfers", description="transfer history")
        self.call("PATCH", f"/api/queue/{entry_id}", {"status": "attending"}, description="call patient")
        self.call("PATCH", f"/api/queue/{entry_id}", {"status": "waiting"}, 409, "illegal transition")
        self.call("GET", "/api/queue/display", description="display board", headers={})
        self.call("GET", "/api/queue/statistics", description="statistics")
        self.call("PATCH", f"/api/queue/{entry_id}", {"status": "attended"}, description="finish visit")
        self.call("GET", "/api/queue", description="queue snapshot")

        self.call("DELETE", f"/api/queue/{entry_id}", None, 403, "staff cannot delete")
        if self.admin_headers:
            self.call("DELETE", f"/api/queue/{entry_id}", None, 200, "admin delete", headers=self.admin_headers)
        return all(r.success for r in self.results)

    def report(self, path: str = "smoke_report.json") -> None:
        failures = [r for r in self.results if not r.success]
        print(f"\n{len(self.results) - len(failures)}/{len(self.results)} calls as expected")
        for r in failures:
            print(f"  {r.method} {r.endpoint} [{r.status_code}] {r.description}: {r.error_message}")
        with open(path, "w", encoding="utf-8") as fh:
            json.dump({
                "timestamp": datetime.now().isoformat(),
                "base_url": BASE_URL,
                "results": [asdict(r) for r in self.results],
            }, fh, indent=2)
        print(f"report written to {path}")


def main() -> int:
    staff_token = os.getenv("FRONTDESK_STAFF_TOKEN")
    if not staff_token:
        print("FRONTDESK_STAFF_TOKEN is not set", file=sys.stderr)
        return 2
    run = QueueSmokeRun(staff_token, os.getenv("FRONTDESK_ADMIN_TOKEN"))
    ok = run.run(int(os.getenv("FRONTDESK_PATIENT_ID", "1")))
    run.report()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
