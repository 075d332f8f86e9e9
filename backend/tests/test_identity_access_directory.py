"""
Directory adapter — lookups, student paging and the pure helpers.
"""
from __future__ import annotations

import json

import httpx
import pytest

from backend.identity_access.appwrite import AppwriteConfig, DatabasesClient
from backend.identity_access.directory import RecordsDirectory, filter_students, humanize_identifier
from utils.fakes import make_student


pytestmark = pytest.mark.anyio("asyncio")

CFG = AppwriteConfig(endpoint="https://aw.example.edu/v1", project_id="p", api_key="k", database_id="db1")

FACULTY_DOC = {
    "$id": "fac-1",
    "facultyId": "fac-1",
    "nameId": "ARAO",
    "name": "Asha Rao",
    "email": "asha.rao@example.edu",
    "designation": "Professor",
    "school": "SOT",
    "department": "CSE",
    "password": "must-not-leak",
    "fcmToken": ["t1"],
    "isHOD": True,
    "freeTimeSlots": ["Mon 10-11"],
}


def _directory(http: httpx.AsyncClient) -> RecordsDirectory:
    return RecordsDirectory(DatabasesClient(CFG, http), student_collection="student", faculty_collection="faculty")


async def test_find_faculty_by_email_maps_allow_listed_fields():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["queries"] = [json.loads(q) for q in request.url.params.get_list("queries[]")]
        return httpx.Response(200, json={"documents": [FACULTY_DOC]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        fac = await _directory(http).find_faculty_by_email("asha.rao@example.edu")

    assert seen["path"].endswith("/collections/faculty/documents")
    assert {"method": "equal", "attribute": "email", "values": ["asha.rao@example.edu"]} in seen["queries"]
    assert fac is not None
    assert fac.name_id == "ARAO"
    assert fac.is_hod is True
    assert fac.free_time_slots == ("Mon 10-11",)
    assert "password" not in fac.to_dict()
    assert "fcmToken" not in fac.to_dict()


async def test_find_by_email_returns_none_when_empty():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"documents": []}))) as http:
        d = _directory(http)
        assert await d.find_student_by_email("nobody@example.edu") is None
        assert await d.find_faculty_by_email("nobody@example.edu") is None


async def test_blank_keys_short_circuit_without_round_trip():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"documents": []})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        d = _directory(http)
        assert await d.find_faculty_by_email("  ") is None
        assert await d.get_student("") is None
    assert calls == []


async def test_list_students_pages_until_short_page():
    offsets = []

    def handler(request: httpx.Request) -> httpx.Response:
        qs = {json.loads(q)["method"]: json.loads(q)["values"][0] for q in request.url.params.get_list("queries[]")}
        offsets.append(qs["offset"])
        n = 2 if qs["offset"] < 4 else 1
        docs = [{"$id": f"s{qs['offset'] + i}", "name": f"S{qs['offset'] + i}"} for i in range(n)]
        return httpx.Response(200, json={"documents": docs})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        students = await _directory(http).list_students(page_size=2)

    assert offsets == [0, 2, 4]
    assert [s.doc_id for s in students] == ["s0", "s1", "s2", "s3", "s4"]


def test_filter_students_matches_any_visible_field_case_insensitive():
    students = [
        make_student("s001", name="Riya Patel", roll_no="22BCP101"),
        make_student("s002", name="Karan Shah", roll_no="22BCP102"),
        make_student("s003", name="Meera Iyer", email="meera.iyer@example.edu"),
    ]
    assert [s.doc_id for s in filter_students(students, "patel")] == ["s001"]
    assert [s.doc_id for s in filter_students(students, "22bcp102")] == ["s002"]
    assert [s.doc_id for s in filter_students(students, "MEERA.IYER@")] == ["s003"]
    assert len(filter_students(students, "   ")) == 3
    assert filter_students(students, "zzz") == []


def test_humanize_identifier():
    assert humanize_identifier("raphael.fournell@gym.example.de") == "Raphael Fournell"
    assert humanize_identifier("max_tolle-2") == "Max Tolle 2"
    assert humanize_identifier("") == ""
