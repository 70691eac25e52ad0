from tcpwatcher.diff import diff_projects, should_commit
from tcpwatcher.models import ProjectRecord


def make_project(project_id: str, name=None) -> ProjectRecord:
    return ProjectRecord(
        project_id=project_id,
        name=name if name is not None else f"Scheme {project_id}",
        start_date="01/01/2025",
        end_date="31/01/2025 17:00",
        draw_link=f"https://example.com/draw/{project_id}",
        brochure_link=f"https://example.com/brochure/{project_id}",
    )


def snapshot(*records: ProjectRecord) -> dict:
    return {record.project_id: record for record in records}


def test_diff_identifies_added_and_removed():
    previous = snapshot(make_project("1"), make_project("2"))
    current = snapshot(make_project("2"), make_project("3"))

    diff = diff_projects(previous, current)

    assert {record.project_id for record in diff.added} == {"3"}
    assert {record.project_id for record in diff.removed} == {"1"}
    assert {record.project_id for record in diff.unchanged} == {"2"}
    assert should_commit(diff)


def test_diff_of_identical_snapshots_is_empty():
    state = snapshot(make_project("10"), make_project("11"), make_project("12"))

    diff = diff_projects(state, dict(state))

    assert diff.added == []
    assert diff.removed == []
    assert not should_commit(diff)


def test_cold_start_reports_everything_as_added():
    current = snapshot(make_project("1"), make_project("2"))

    diff = diff_projects({}, current)

    assert {record.project_id for record in diff.added} == {"1", "2"}
    assert diff.removed == []


def test_pure_removal():
    previous = snapshot(make_project("1"), make_project("2"))

    diff = diff_projects(previous, snapshot(make_project("1")))

    assert diff.added == []
    assert [record.project_id for record in diff.removed] == ["2"]


def test_field_changes_on_existing_id_are_not_reported():
    previous = snapshot(make_project("1", name="Old name"), make_project("2"))
    renamed = ProjectRecord(
        project_id="2",
        name="Renamed",
        start_date="02/02/2025",
        end_date="28/02/2025",
        draw_link="https://example.com/other",
        brochure_link="N/A",
    )
    current = snapshot(renamed, make_project("3"))

    diff = diff_projects(previous, current)

    assert [record.project_id for record in diff.added] == ["3"]
    assert [record.project_id for record in diff.removed] == ["1"]
    assert diff.unchanged == [renamed]


def test_removed_records_come_from_previous_snapshot():
    stored = make_project("7", name="Stored copy")

    diff = diff_projects(snapshot(stored), {})

    assert diff.removed == [stored]
    assert diff.removed[0].name == "Stored copy"


def test_partition_covers_every_id_exactly_once():
    previous = snapshot(*(make_project(str(i)) for i in range(0, 8)))
    current = snapshot(*(make_project(str(i)) for i in range(5, 12)))

    diff = diff_projects(previous, current)
    added = {record.project_id for record in diff.added}
    removed = {record.project_id for record in diff.removed}
    unchanged = {record.project_id for record in diff.unchanged}

    assert added | unchanged == set(current)
    assert not added & unchanged
    assert removed | unchanged == set(previous)
    assert not removed & unchanged


def test_iteration_order_does_not_change_result_sets():
    records = [make_project(str(i)) for i in range(6)]
    previous = snapshot(*records[:4])
    forward = diff_projects(previous, snapshot(*records[2:]))
    backward = diff_projects(previous, snapshot(*reversed(records[2:])))

    assert {r.project_id for r in forward.added} == {r.project_id for r in backward.added}
    assert {r.project_id for r in forward.removed} == {r.project_id for r in backward.removed}
