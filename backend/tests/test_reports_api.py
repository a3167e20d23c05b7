"""
Reports API Tests

Drives the /api endpoints through FastAPI's TestClient against an in-memory
SQLite database and a temporary raw file store.
"""
import pytest
import sys
import os
from datetime import datetime, timezone

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from credit_ingest.database import Base, get_db
from credit_ingest.main import app
from credit_ingest.models import db_models  # noqa: F401  registers tables on Base
from credit_ingest.routers import reports as reports_module
from credit_ingest.routers.reports import get_file_store
from credit_ingest.services.report_service import ReportService
from credit_ingest.services.storage import LocalFileStore


def make_report_xml(first_name="John", last_name="Doe", balance="75000", score="750"):
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<INProfileResponse>
  <Header><ReportDate>20241015</ReportDate></Header>
  <Current_Application>
    <Current_Application_Details>
      <Current_Applicant_Details>
        <First_Name>{first_name}</First_Name>
        <Last_Name>{last_name}</Last_Name>
        <MobilePhoneNumber>9876543210</MobilePhoneNumber>
        <IncomeTaxPan>abcde1234f</IncomeTaxPan>
      </Current_Applicant_Details>
    </Current_Application_Details>
  </Current_Application>
  <SCORE><BureauScore>{score}</BureauScore></SCORE>
  <CAIS_Account>
    <CAIS_Summary>
      <Credit_Account>
        <CreditAccountTotal>2</CreditAccountTotal>
        <CreditAccountActive>1</CreditAccountActive>
        <CreditAccountClosed>1</CreditAccountClosed>
      </Credit_Account>
      <Total_Outstanding_Balance>
        <Outstanding_Balance_Secured>25000</Outstanding_Balance_Secured>
        <Outstanding_Balance_UnSecured>50000</Outstanding_Balance_UnSecured>
        <Outstanding_Balance_All>{balance}</Outstanding_Balance_All>
      </Total_Outstanding_Balance>
    </CAIS_Summary>
    <CAIS_Account_DETAILS>
      <Account_Type>10</Account_Type>
      <Portfolio_Type>R</Portfolio_Type>
      <Subscriber_Name>Test Bank</Subscriber_Name>
      <Account_Status>11</Account_Status>
      <Current_Balance>{balance}</Current_Balance>
    </CAIS_Account_DETAILS>
    <CAIS_Account_DETAILS>
      <Account_Type>51</Account_Type>
      <Portfolio_Type>I</Portfolio_Type>
      <Subscriber_Name>Another Bank</Subscriber_Name>
      <Account_Status>13</Account_Status>
      <Current_Balance>0</Current_Balance>
    </CAIS_Account_DETAILS>
  </CAIS_Account>
  <CAPS><CAPS_Summary><CAPSLast90Days>3</CAPSLast90Days></CAPS_Summary></CAPS>
</INProfileResponse>
""".encode("utf-8")


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def store(tmp_path):
    return LocalFileStore(str(tmp_path / "storage"))


@pytest.fixture
def client(store):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def upload(client, content, filename="report.xml", content_type="application/xml"):
    return client.post("/api/upload", files={"file": (filename, content, content_type)})


# =============================================================================
# TEST: upload
# =============================================================================

class TestUpload:

    def test_upload_success(self, client, store):
        response = upload(client, make_report_xml())
        assert response.status_code == 201

        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Credit report processed successfully"

        data = body["data"]
        assert data["basicDetails"]["name"] == "John Doe"
        assert data["basicDetails"]["creditScore"] == 750
        assert data["reportSummary"]["totalAccounts"] == 2
        assert data["reportSummary"]["recentEnquiries"] == 3
        assert len(data["creditAccounts"]) == 2
        assert data["creditAccounts"][0]["type"] == "Credit Card (Revolving)"
        assert data["creditAccounts"][1]["status"] == "Closed - Regular"
        assert data["accountSummary"] == {"total": 2, "active": 1, "closed": 1, "activePercentage": 50}
        assert data["totalDebt"] == 75000
        assert data["sourceFile"] == "report.xml"
        assert len(data["fileHash"]) == 64

        stored = os.listdir(store.base_dir)
        assert len(stored) == 1
        assert data["rawFileUrl"] == f"/files/{stored[0]}"

    def test_stored_file_is_byte_identical(self, client, store):
        content = make_report_xml()
        upload(client, content)
        (stored,) = os.listdir(store.base_dir)
        with open(os.path.join(store.base_dir, stored), "rb") as f:
            assert f.read() == content

    def test_duplicate_upload(self, client, store):
        first = upload(client, make_report_xml()).json()["data"]
        response = upload(client, make_report_xml(), filename="copy.xml")

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "This file has already been processed"
        assert body["reportId"] == first["id"]
        assert len(os.listdir(store.base_dir)) == 1

    def test_wrong_extension(self, client):
        response = upload(client, make_report_xml(), filename="report.txt", content_type="text/plain")
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_FILE_TYPE"

    def test_wrong_mime_type(self, client):
        response = upload(client, make_report_xml(), content_type="application/json")
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_MIME_TYPE"

    def test_malformed_xml(self, client, store):
        response = upload(client, b"<INProfileResponse><Header></INProfileResponse>")
        assert response.status_code == 422
        assert response.json()["message"].startswith("XML parsing failed")
        assert os.listdir(store.base_dir) == []

    def test_empty_file(self, client):
        response = upload(client, b"")
        assert response.status_code == 422
        assert response.json()["message"] == "XML file is empty"

    def test_non_experian_xml(self, client, store):
        response = upload(client, b"<Invoice><Total>10</Total></Invoice>")
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "INVALID_REPORT_FORMAT"
        assert "valid Experian credit report" in body["message"]
        assert os.listdir(store.base_dir) == []

    def test_file_too_large(self, client, monkeypatch):
        monkeypatch.setattr(reports_module, "MAX_UPLOAD_BYTES", 16)
        response = upload(client, make_report_xml())
        assert response.status_code == 400
        assert response.json()["error"] == "FILE_TOO_LARGE"

    def test_missing_file_field(self, client, store):
        response = client.post("/api/upload")
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "No file uploaded", "error": "NO_FILE"}
        assert os.listdir(store.base_dir) == []

    def test_simultaneous_duplicate_upload(self, client, store, monkeypatch):
        first = upload(client, make_report_xml()).json()["data"]

        real_find_by_hash = ReportService.find_by_hash
        lookups = []

        def first_lookup_misses(self, file_hash):
            lookups.append(file_hash)
            if len(lookups) == 1:
                return None
            return real_find_by_hash(self, file_hash)

        monkeypatch.setattr(ReportService, "find_by_hash", first_lookup_misses)
        response = upload(client, make_report_xml(), filename="copy.xml")

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["reportId"] == first["id"]
        assert len(os.listdir(store.base_dir)) == 1
        assert client.get("/api/reports").json()["data"]["pagination"]["totalReports"] == 1


# =============================================================================
# TEST: list & stats
# =============================================================================

class TestListAndStats:

    def test_empty_list(self, client):
        body = client.get("/api/reports").json()
        assert body["data"]["reports"] == []
        assert body["data"]["pagination"] == {
            "currentPage": 1,
            "totalPages": 0,
            "totalReports": 0,
            "hasNextPage": False,
            "hasPrevPage": False,
        }

    def test_pagination_newest_first(self, client):
        upload(client, make_report_xml("Alice", "One"))
        upload(client, make_report_xml("Bob", "Two"))
        upload(client, make_report_xml("Carol", "Three"))

        first_page = client.get("/api/reports", params={"page": 1, "limit": 2}).json()["data"]
        assert [r["name"] for r in first_page["reports"]] == ["Carol Three", "Bob Two"]
        assert first_page["pagination"]["totalPages"] == 2
        assert first_page["pagination"]["totalReports"] == 3
        assert first_page["pagination"]["hasNextPage"] is True
        assert first_page["pagination"]["hasPrevPage"] is False

        second_page = client.get("/api/reports", params={"page": 2, "limit": 2}).json()["data"]
        assert [r["name"] for r in second_page["reports"]] == ["Alice One"]
        assert second_page["pagination"]["hasNextPage"] is False
        assert second_page["pagination"]["hasPrevPage"] is True

    def test_list_item_fields(self, client):
        upload(client, make_report_xml(balance="12000"))
        item = client.get("/api/reports").json()["data"]["reports"][0]
        assert item["creditScore"] == 750
        assert item["totalAccounts"] == 2
        assert item["activeAccounts"] == 1
        assert item["currentBalance"] == 12000

    def test_limit_out_of_range(self, client):
        assert client.get("/api/reports", params={"limit": 0}).status_code == 422
        assert client.get("/api/reports", params={"limit": 101}).status_code == 422

    def test_invalid_query_uses_error_envelope(self, client):
        response = client.get("/api/reports", params={"page": "first"})
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid request"
        assert body["errors"][0]["loc"] == ["query", "page"]

    def test_stats(self, client):
        upload(client, make_report_xml("Alice", "One", balance="1000"))
        upload(client, make_report_xml("Bob", "Two", balance="2500"))

        data = client.get("/api/reports/stats").json()["data"]
        assert data["overview"] == {"totalReports": 2, "totalAccounts": 4, "totalBalance": 3500}
        today = datetime.now(timezone.utc).date().isoformat()
        assert data["recentActivity"] == [{"date": today, "count": 2}]

    def test_stats_empty(self, client):
        data = client.get("/api/reports/stats").json()["data"]
        assert data["overview"] == {"totalReports": 0, "totalAccounts": 0, "totalBalance": 0}
        assert data["recentActivity"] == []


# =============================================================================
# TEST: get & delete
# =============================================================================

class TestGetAndDelete:

    def test_get_report(self, client):
        report_id = upload(client, make_report_xml()).json()["data"]["id"]
        response = client.get(f"/api/reports/{report_id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == report_id
        assert data["basicDetails"]["pan"] == "abcde1234f"
        assert data["accountSummary"] == {"total": 2, "active": 1, "closed": 1, "activePercentage": 50}
        assert data["totalDebt"] == 75000

    def test_get_missing_report(self, client):
        response = client.get("/api/reports/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Credit report not found"}

    def test_delete_report(self, client, store):
        report_id = upload(client, make_report_xml()).json()["data"]["id"]
        response = client.delete(f"/api/reports/{report_id}")
        assert response.status_code == 200
        assert response.json()["message"] == "Credit report deleted successfully"

        assert client.get(f"/api/reports/{report_id}").status_code == 404
        assert os.listdir(store.base_dir) == []

    def test_reupload_after_delete(self, client):
        report_id = upload(client, make_report_xml()).json()["data"]["id"]
        client.delete(f"/api/reports/{report_id}")
        assert upload(client, make_report_xml()).status_code == 201

    def test_delete_missing_report(self, client):
        response = client.delete("/api/reports/does-not-exist")
        assert response.status_code == 404


# =============================================================================
# TEST: health
# =============================================================================

class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "OK"
        assert body["uptime"] >= 0
        assert "timestamp" in body

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Credit Ingest"
