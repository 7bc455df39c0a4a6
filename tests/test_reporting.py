"""
Tests for project/zone rollups, export rows and unmatched diagnostics.
"""
import pandas as pd
import pytest

from boqrecon.domain.entities import Activity, KPIRecord
from boqrecon.modules.diagnostics import (
    REASON_MISSING_NAME, REASON_NO_ACTIVITY, REASON_UNKNOWN_INPUT_TYPE,
    find_unmatched_records, suggest_activity_names,
)
from boqrecon.modules.export import build_export_rows, report_to_dataframe, write_report
from boqrecon.modules.reconciliation import compute_report
from boqrecon.modules.rollups import (
    clamp_pct, summarize_by_project, summarize_by_zone, validate_tie_outs,
)


def make_activity(**overrides) -> Activity:
    row = {
        'activity_name': 'Concrete Pour',
        'project_code': 'P5066',
        'project_full_code': 'P5066-R4',
        'zone_ref': 'Tower A',
        'zone_number': '2',
        'unit': 'm3',
        'activity_division': 'Civil',
        'rate': 100,
        'total_units': 100,
        'planned_units': 100,
        'total_value': 10000,
        'planned_value': 6000,
    }
    row.update(overrides)
    return Activity.from_raw(row)


def make_kpi(**overrides) -> KPIRecord:
    row = {
        'activity_name': 'Concrete Pour',
        'project_code': 'P5066',
        'zone': 'Zone 2',
        'input_type': 'Actual',
        'quantity': 10,
        'activity_date': '2024-01-15',
    }
    row.update(overrides)
    return KPIRecord.from_raw(row)


@pytest.fixture
def report():
    activities = (
        make_activity(),
        make_activity(activity_name='Formwork', zone_number='3', total_value=4000, planned_value=5000),
        make_activity(
            activity_name='Excavation', project_code='P7000', project_full_code='P7000-R1',
            zone_ref='', zone_number='',
        ),
    )
    kpis = (
        make_kpi(quantity=40),
        make_kpi(activity_name='Formwork', zone='Zone 3', quantity=80, actual_date='2024-02-10'),
        make_kpi(activity_name='Excavation', project_code='P7000', zone='', quantity=10),
    )
    return compute_report(activities, kpis)


class TestProjectRollup:
    """Tests for summarize_by_project."""

    def test_one_row_per_project(self, report):
        """Test one summary per project full code."""
        projects = summarize_by_project(report.rows)
        assert [p['project_full_code'] for p in projects] == ['P5066-R4', 'P7000-R1']
        assert projects[0]['activity_count'] == 2

    def test_sums(self, report):
        """Test per-project sums."""
        p5066 = summarize_by_project(report.rows)[0]
        assert p5066['actual_units'] == pytest.approx(120.0)
        assert p5066['total_value'] == pytest.approx(14000.0)
        assert p5066['earned_value'] == pytest.approx(40 * 100 + 80 * 40)

    def test_work_value_progress_clamped(self, report):
        """Work-value percentages stay in [0, 100]."""
        p5066 = summarize_by_project(report.rows)[0]
        assert 0 <= p5066['planned_progress_pct'] <= 100
        assert 0 <= p5066['actual_progress_pct'] <= 100
        assert p5066['variance_pct'] == pytest.approx(
            p5066['actual_progress_pct'] - p5066['planned_progress_pct']
        )

    def test_clamp_pct(self):
        """Test clamp_pct bounds."""
        assert clamp_pct(-5) == 0.0
        assert clamp_pct(150) == 100.0
        assert clamp_pct(42.5) == 42.5

    def test_rollups_tie_out_to_report(self, report):
        """Rollup totals equal the report totals."""
        results = validate_tie_outs(report)
        assert len(results) == 6
        assert all(r['passed'] for r in results)

    def test_empty(self):
        """Empty rows give empty rollups."""
        assert summarize_by_project([]) == []
        assert summarize_by_zone([]) == []


class TestZoneRollup:
    """Tests for summarize_by_zone."""

    def test_grouped_by_zone_number(self, report):
        """Test grouping by project and zone number."""
        zones = summarize_by_zone(report.rows)
        keys = [(z['project_full_code'], z['zone_key']) for z in zones]
        assert keys == [('P5066-R4', '2'), ('P5066-R4', '3'), ('P7000-R1', '')]

    def test_zone_progress(self, report):
        """Test zone progress percentage."""
        zone_3 = summarize_by_zone(report.rows)[1]
        assert zone_3['actual_units'] == pytest.approx(80.0)
        assert zone_3['progress_pct'] == pytest.approx(80.0)


class TestExport:
    """Tabular export payload."""

    def test_row_per_activity_plus_total(self, report):
        """Test one row per activity plus TOTAL."""
        rows = build_export_rows(report)
        assert len(rows) == 4
        assert rows[-1]['Activity Name'] == 'TOTAL'

    def test_total_row_matches_report_totals(self, report):
        """The TOTAL row equals the report totals."""
        total = build_export_rows(report)[-1]
        assert total['Actual Units'] == report.totals.actual_units
        assert total['Earned Value'] == report.totals.earned_value
        assert total['Total Value'] == report.totals.total_value
        assert total['Planned Value'] == report.totals.planned_value
        assert total['Rate'] == ''
        assert total['Status'] == ''

    def test_zone_display_and_labels(self, report):
        """Test zone display and label columns."""
        rows = build_export_rows(report)
        assert rows[0]['Zone'] == 'Tower A - 2'
        assert rows[0]['Project'] == 'P5066-R4'
        assert rows[0]['Division'] == 'Civil'
        assert rows[2]['Zone'] == 'N/A'

    def test_dates(self, report):
        """Test date cells and the N/A placeholder."""
        rows = build_export_rows(report)
        # Started, no completion anywhere except the record's own activity date
        assert rows[0]['Actual Start Date'] == '2024-01-15'
        assert rows[0]['Actual End Date'] == '2024-01-15'
        assert rows[0]['Planned Start Date'] == 'N/A'
        assert rows[1]['Actual End Date'] == '2024-02-10'

    def test_not_started_actual_end(self):
        """Actual end reads Not Started when there is no start."""
        activity = make_activity(actual_completion_date='2024-05-01')
        rows = build_export_rows(compute_report((activity,), (make_kpi(input_type='Planned'),)))
        assert rows[0]['Actual Start Date'] == 'N/A'
        assert rows[0]['Actual End Date'] == 'Not Started'
        assert rows[0]['Status'] == 'Not Started'

    def test_dataframe_column_order(self, report):
        """Test the export column order."""
        df = report_to_dataframe(report)
        assert list(df.columns)[:3] == ['Activity Name', 'Project', 'Zone']
        assert len(df.columns) == 18
        assert len(df) == 4

    def test_without_totals(self, report):
        """Test leaving out the TOTAL row."""
        assert len(report_to_dataframe(report, include_totals=False)) == 3

    def test_write_csv(self, report, tmp_path):
        """Test writing CSV."""
        path = write_report(report, tmp_path / 'activities.csv')
        df = pd.read_csv(path)
        assert df.iloc[-1]['Activity Name'] == 'TOTAL'
        assert df.iloc[-1]['Actual Units'] == pytest.approx(report.totals.actual_units)

    def test_write_xlsx(self, report, tmp_path):
        """Test writing XLSX."""
        path = write_report(report, tmp_path / 'activities.xlsx')
        df = pd.read_excel(path)
        assert len(df) == 4
        assert df.iloc[0]['Status'] == report.rows[0].status.value

    def test_unsupported_format(self, report, tmp_path):
        """An unknown suffix raises ValueError."""
        with pytest.raises(ValueError):
            write_report(report, tmp_path / 'activities.pdf')


class TestUnmatchedDiagnostics:
    """Tests for unmatched KPI diagnostics."""

    def test_lists_only_unclaimed_records(self):
        """Only records no activity claims are listed, each with a reason."""
        activities = (make_activity(), make_activity(activity_name='Formwork'))
        kpis = (
            make_kpi(),
            make_kpi(activity_name='Concrete Poor'),
            make_kpi(zone='Zone 9'),
            make_kpi(input_type='Forecast'),
            make_kpi(activity_name=''),
        )
        unmatched = find_unmatched_records(activities, kpis)
        assert [u.index for u in unmatched] == [1, 2, 3, 4]
        reasons = {u.index: u.reason for u in unmatched}
        assert reasons[1] == REASON_NO_ACTIVITY
        assert reasons[2] == REASON_NO_ACTIVITY
        assert reasons[3] == REASON_UNKNOWN_INPUT_TYPE
        assert reasons[4] == REASON_MISSING_NAME

    def test_typo_gets_suggestion(self):
        """A misspelt name gets the closest activity."""
        activities = (make_activity(), make_activity(activity_name='Formwork'))
        suggestions = suggest_activity_names(make_kpi(activity_name='Concrete Poor'), activities)
        assert suggestions
        assert suggestions[0].activity_name == 'Concrete Pour'
        assert suggestions[0].score >= 80

    def test_suggestions_stay_in_project(self):
        """Suggestions never cross projects."""
        activities = (make_activity(project_code='P7000', project_full_code='P7000-R1'),)
        suggestions = suggest_activity_names(make_kpi(activity_name='Concrete Poor'), activities)
        assert suggestions == []

    def test_min_score_filters(self):
        """Weak matches are not suggested."""
        activities = (make_activity(activity_name='Excavation'),)
        assert suggest_activity_names(make_kpi(activity_name='Concrete'), activities) == []

    def test_does_not_change_report(self):
        """Diagnostics leave the report unchanged."""
        activities = (make_activity(),)
        kpis = (make_kpi(), make_kpi(activity_name='Concrete Poor'))
        before = compute_report(activities, kpis).to_dict()
        find_unmatched_records(activities, kpis)
        assert compute_report(activities, kpis).to_dict() == before

    def test_to_dict(self):
        """Test the serialized shape."""
        unmatched = find_unmatched_records((make_activity(),), (make_kpi(activity_name='Concrete Poor'),))
        data = unmatched[0].to_dict()
        assert data['activity_name'] == 'Concrete Poor'
        assert data['suggestions'][0]['activity_name'] == 'Concrete Pour'
