"""
Tests for the reports API endpoints and the snapshot repository.
"""
import io
import sys
sys.path.insert(0, '.')

import pandas as pd
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from boqrecon.api.v1.reports import get_snapshot_repository
from boqrecon.domain.exceptions import InvalidRecordError, SnapshotLoadError
from boqrecon.infrastructure.repositories import KPIRecordRepository, SnapshotRepository
from boqrecon.infrastructure.retry import RetryPolicy
from boqrecon.main import app
from boqrecon.models import Base, BOQActivityEntity, KPIRecordEntity, get_db


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_reports.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


ACTIVITIES = [
    {
        "Activity Name": "Concrete Pour", "Project Code": "P5066", "Project Full Code": "P5066-R4",
        "Zone Ref": "Tower A", "Zone Number": "2", "Planned Units": 100, "Total Units": 100,
        "Total Value": 10000, "Planned Value": 6000, "Rate": 100,
    },
    {
        "Activity Name": "Concrete Pour", "Project Code": "P5066", "Project Full Code": "P5066-R4",
        "Zone Ref": "Tower A", "Zone Number": "3", "Planned Units": 100, "Total Units": 100,
        "Total Value": 10000, "Planned Value": 6000, "Rate": 100,
    },
    {
        "Activity Name": "Excavation", "Project Code": "P7000", "Project Full Code": "P7000-R1",
        "Planned Units": 10, "Total Units": 10, "Total Value": 1000, "Rate": 100,
    },
]

KPIS = [
    {"Activity Name": "Concrete Pour", "Project Code": "P5066", "Zone": "P5066 - Zone 2",
     "Input Type": "Actual", "Quantity": 60, "Activity Date": "2024-01-15"},
    {"Activity Name": "Concrete Pour", "Project Code": "P5066", "Zone": "Zone 3",
     "Input Type": "Actual", "Quantity": 20, "Activity Date": 45306},
    {"Activity Name": "Concrete Poor", "Project Code": "P5066", "Zone": "Zone 2",
     "Input Type": "Actual", "Quantity": 5},
    {"Activity Name": "Excavation", "Project Full Code": "P7000-R1",
     "Input Type": "Planned", "Quantity": 10, "Target Date": "2024-06-30"},
]


@pytest.fixture(scope="module")
def client():
    """Create test client with test database."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def seeded(client):
    """Reset stored rows before each test."""
    response = client.post(
        "/api/v1/reports/import",
        json={"activities": ACTIVITIES, "kpis": KPIS, "replace": True},
    )
    assert response.status_code == 201
    yield


class TestImport:
    """Tests for POST /api/v1/reports/import"""

    def test_import_counts(self, client):
        """Test the import response counts."""
        response = client.post(
            "/api/v1/reports/import",
            json={"activities": ACTIVITIES[:1], "kpis": [], "replace": True},
        )
        assert response.status_code == 201
        assert response.json() == {"activities_imported": 1, "kpis_imported": 0}

    def test_raw_rows_stored(self, client):
        """Test raw rows are stored with their project keys."""
        db = TestingSessionLocal()
        try:
            assert db.query(BOQActivityEntity).count() == 3
            assert db.query(KPIRecordEntity).count() == 4
            stored = db.query(BOQActivityEntity).first()
            assert stored.project_full_code == "P5066-R4"
            assert stored.raw_row()["Zone Number"] == "2"
        finally:
            db.close()


class TestActivityReport:
    """Tests for GET /api/v1/reports/activities"""

    def test_full_report(self, client):
        """Test row values across all activities."""
        response = client.get("/api/v1/reports/activities")
        assert response.status_code == 200

        data = response.json()
        assert len(data["rows"]) == 3
        zone_2, zone_3, excavation = data["rows"]

        assert zone_2["actual_units"] == 60
        assert zone_2["status"] == "On Track"
        assert zone_2["zone"] == "Tower A - 2"
        assert zone_2["earned_value"] == pytest.approx(6000.0)

        assert zone_3["actual_units"] == 20
        assert zone_3["status"] == "Delayed"
        assert zone_3["actual_start_date"] == "2024-01-15"

        assert excavation["status"] == "Not Started"
        assert excavation["planned_end_date"] == "2024-06-30"
        assert excavation["actual_end_date"] == ""

    def test_totals_match_rows(self, client):
        """Totals equal the row sums."""
        data = client.get("/api/v1/reports/activities").json()
        totals = data["totals"]
        assert totals["actual_units"] == pytest.approx(sum(r["actual_units"] for r in data["rows"]))
        assert totals["earned_value"] == pytest.approx(sum(r["earned_value"] for r in data["rows"]))
        assert totals["activity_count"] == 3
        assert sum(data["status_counts"].values()) == 3

    def test_project_scope(self, client):
        """Test scoping by project code in any case."""
        response = client.get("/api/v1/reports/activities", params={"project_code": "p7000"})
        assert response.status_code == 200
        rows = response.json()["rows"]
        assert [r["activity_name"] for r in rows] == ["Excavation"]

    def test_unknown_project_404(self, client):
        """An unknown project returns 404."""
        response = client.get("/api/v1/reports/activities", params={"project_code": "NOPE"})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "UNKNOWN_PROJECT"


class TestRollupEndpoints:
    """Tests for GET /api/v1/reports/projects and /zones"""

    def test_projects(self, client):
        """Test the project rollup endpoint."""
        response = client.get("/api/v1/reports/projects")
        assert response.status_code == 200
        projects = response.json()
        assert [p["project_full_code"] for p in projects] == ["P5066-R4", "P7000-R1"]
        assert projects[0]["actual_units"] == pytest.approx(80.0)

    def test_zones(self, client):
        """Test the zone rollup endpoint."""
        response = client.get("/api/v1/reports/zones", params={"project_code": "P5066"})
        assert response.status_code == 200
        zones = response.json()
        assert [z["zone_key"] for z in zones] == ["2", "3"]


class TestUnmatchedEndpoint:
    """Tests for GET /api/v1/reports/unmatched"""

    def test_unmatched_with_suggestion(self, client):
        """Test an unmatched record with its suggestion."""
        response = client.get("/api/v1/reports/unmatched")
        assert response.status_code == 200
        unmatched = response.json()
        assert [u["activity_name"] for u in unmatched] == ["Concrete Poor"]
        assert unmatched[0]["reason"] == "no_matching_activity"
        assert unmatched[0]["suggestions"][0]["activity_name"] == "Concrete Pour"

    def test_unmatched_scoped_to_project(self, client):
        """Test unmatched records scoped to one project."""
        response = client.get("/api/v1/reports/unmatched", params={"project_code": "P7000-R1"})
        assert response.status_code == 200
        assert response.json() == []


class TestExportEndpoint:
    """Tests for GET /api/v1/reports/export"""

    def test_csv(self, client):
        """Test CSV export with a TOTAL row."""
        response = client.get("/api/v1/reports/export", params={"format": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        df = pd.read_csv(io.StringIO(response.text))
        assert len(df) == 4
        assert df.iloc[-1]["Activity Name"] == "TOTAL"

    def test_xlsx(self, client):
        """Test XLSX export."""
        response = client.get("/api/v1/reports/export", params={"format": "xlsx"})
        assert response.status_code == 200
        df = pd.read_excel(io.BytesIO(response.content))
        assert len(df) == 4

    def test_bad_format(self, client):
        """An unknown format is a validation error."""
        response = client.get("/api/v1/reports/export", params={"format": "pdf"})
        assert response.status_code == 422


class TestSnapshotRepository:
    """Storage boundary behavior."""

    def test_load_snapshot(self, client):
        """Test loading the stored snapshot."""
        db = TestingSessionLocal()
        try:
            snapshot = SnapshotRepository(db).load_snapshot()
            assert len(snapshot.activities) == 3
            assert len(snapshot.kpis) == 4
            assert snapshot.kpis[1].activity_date == 45306
        finally:
            db.close()

    def test_project_scoped_load_keeps_all_kpis(self, client):
        """A project-scoped load keeps every KPI."""
        db = TestingSessionLocal()
        try:
            snapshot = SnapshotRepository(db).load_snapshot("p5066-r4")
            assert len(snapshot.activities) == 2
            assert len(snapshot.kpis) == 4
        finally:
            db.close()

    def test_unreachable_store_maps_to_503(self, client):
        """An unreachable store returns 503."""
        class DownRepository(SnapshotRepository):
            def _read(self, project_code):
                raise OperationalError("SELECT", {}, Exception("unable to open database file"))

        def down_repository():
            db = TestingSessionLocal()
            return DownRepository(db, RetryPolicy(attempts=2, sleep=lambda _: None))

        app.dependency_overrides[get_snapshot_repository] = down_repository
        try:
            response = client.get("/api/v1/reports/activities")
        finally:
            del app.dependency_overrides[get_snapshot_repository]

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "SNAPSHOT_LOAD_FAILED"

    def test_repository_counts(self, client):
        """Test counts, project filter and paging."""
        db = TestingSessionLocal()
        try:
            repo = SnapshotRepository(db)
            assert repo.activities.count() == 3
            assert repo.kpis.count() == 4
            assert len(repo.activities.get_for_project("P7000")) == 1
            assert len(repo.kpis.get_all(limit=2)) == 2
        finally:
            db.close()

    def test_non_mapping_row_rejected(self, client):
        """A row that is not a mapping raises InvalidRecordError."""
        db = TestingSessionLocal()
        try:
            with pytest.raises(InvalidRecordError) as exc:
                SnapshotRepository(db).import_snapshot([["not", "a", "row"]])
            assert exc.value.index == 0
            assert exc.value.code == "INVALID_RECORD"
        finally:
            db.close()

    def test_failed_kpi_step_keeps_previous_snapshot(self, client, monkeypatch):
        """A failure while replacing KPIs leaves both tables as they were."""
        def failing_add_all(self, entities):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(KPIRecordRepository, "add_all", failing_add_all)
        db = TestingSessionLocal()
        try:
            repo = SnapshotRepository(db)
            with pytest.raises(OperationalError):
                repo.import_snapshot(
                    [{"Activity Name": "New", "Project Code": "P9"}],
                    [{"Activity Name": "New", "Project Code": "P9", "Input Type": "Actual"}],
                    replace=True,
                )
            snapshot = repo.load_snapshot()
        finally:
            db.close()

        assert [a.name for a in snapshot.activities] == [
            "Concrete Pour", "Concrete Pour", "Excavation",
        ]
        assert len(snapshot.kpis) == 4

    def test_import_without_kpis_keeps_stored_kpis(self, client):
        """Replacing activities alone does not touch stored KPI records."""
        db = TestingSessionLocal()
        try:
            repo = SnapshotRepository(db)
            counts = repo.import_snapshot(ACTIVITIES[:1], None, replace=True)
            assert counts == (1, 0)
            assert repo.activities.count() == 1
            assert repo.kpis.count() == 4
        finally:
            db.close()

    def test_retry_exhaustion_raises(self):
        """Test the load gives up after the configured attempts."""
        class DownRepository(SnapshotRepository):
            calls = 0

            def _read(self, project_code):
                DownRepository.calls += 1
                raise OperationalError("SELECT", {}, Exception("locked"))

        db = TestingSessionLocal()
        try:
            repo = DownRepository(db, RetryPolicy(attempts=3, sleep=lambda _: None))
            with pytest.raises(SnapshotLoadError):
                repo.load_snapshot()
            assert DownRepository.calls == 3
        finally:
            db.close()
