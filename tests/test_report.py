from rfpflow.models.project import Project, ProjectStage, ProjectPriority
from rfpflow.models.subtask import Subtask
from rfpflow.models.user import User, UserRole
from rfpflow.services.report_service import export_filename, render_project_report


def test_export_filename_is_derived_from_title():
    assert export_filename("RFP #42: Roads & Bridges") == "rfp_42_roads_bridges_report.pdf"
    assert export_filename("") == "project_report.pdf"


def test_render_project_report_produces_pdf():
    owner = User(id="u1", email="owner@example.com", first_name="Olive", role=UserRole.ADMIN)
    project = Project(
        id="p1",
        title="County <Courthouse> Upgrade",
        description="HVAC & electrical",
        stage=ProjectStage.SUBMITTED,
        priority=ProjectPriority.HIGH,
        progress_percentage=80,
        is_archived=False,
        owner=owner,
        tags=[],
    )
    subtasks = [Subtask(title="Price sheet", completed=True)]

    report = render_project_report(project, subtasks, [])

    assert report["filename"] == "county_courthouse_upgrade_report.pdf"
    assert report["content"].startswith(b"%PDF")
