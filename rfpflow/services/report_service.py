"""
PDF export of a project: details, subtasks, comments and tags.
"""
import io
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.lib.enums import TA_RIGHT

from ..models.project import Project, STAGE_METADATA, ProjectStage

GRID_STYLE = TableStyle([
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#F3F4F6')),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, -1), 9),
    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
])


def export_filename(title: str) -> str:
    """File name for a project's export, derived from its title"""
    slug = re.sub(r"[^A-Za-z0-9]+", "_", title or "").strip("_").lower()
    return f"{slug or 'project'}_report.pdf"


class ProjectReportService:
    """Renders a project summary PDF."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles"""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Normal'],
            fontSize=20,
            textColor=colors.black,
            spaceAfter=8,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='StageLabel',
            parent=self.styles['Normal'],
            fontSize=12,
            textColor=colors.black,
            spaceAfter=12,
            fontName='Helvetica-Bold',
            alignment=TA_RIGHT
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Normal'],
            fontSize=12,
            textColor=colors.black,
            spaceAfter=6,
            fontName='Helvetica-Bold'
        ))

    def generate_project_pdf(self, project: Project, subtasks: List[Any], comments: List[Any]) -> io.BytesIO:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.5*inch, title=project.title)

        story: List[Any] = []
        story.extend(self._build_header(project))
        story.append(Spacer(1, 0.2*inch))
        story.extend(self._build_details(project))
        story.append(Spacer(1, 0.2*inch))
        story.extend(self._build_subtasks(subtasks))
        story.append(Spacer(1, 0.2*inch))
        story.extend(self._build_comments(comments))

        doc.build(story, onFirstPage=self._add_page_number, onLaterPages=self._add_page_number)
        buffer.seek(0)
        return buffer

    def _build_header(self, project: Project) -> List:
        stage = STAGE_METADATA[ProjectStage(project.stage)]["label"]
        story = [
            Paragraph(escape(project.title), self.styles['ReportTitle']),
            Paragraph(f"Stage: {stage}" + (" (archived)" if project.is_archived else ""), self.styles['StageLabel']),
        ]
        if project.tags:
            names = ", ".join(escape(tag.name) for tag in project.tags)
            story.append(Paragraph(f"Tags: {names}", self.styles['Normal']))
        return story

    def _build_details(self, project: Project) -> List:
        owner = project.owner.full_name if project.owner else ""
        assignee = project.assignee.full_name if project.assignee else ""
        rows = [
            ['Field', 'Value'],
            ['Owner', owner],
            ['Assigned to', assignee],
            ['Priority', self._enum_value(project.priority)],
            ['Priority banding', project.priority_banding or ''],
            ['Progress', f"{project.progress_percentage or 0}%"],
            ['Due date', self._format_date(project.due_date)],
            ['Client', project.client_name or ''],
            ['Client email', project.client_email or ''],
            ['RFP title', project.rfp_title or ''],
            ['State', project.state or ''],
            ['Company assignment', project.company_assignment or ''],
        ]
        story = [Paragraph("Project Details", self.styles['SectionHeader'])]
        table = Table([[self._cell(a), self._cell(b)] for a, b in rows], colWidths=[1.8*inch, 4.6*inch])
        table.setStyle(GRID_STYLE)
        story.append(table)

        if project.description:
            story.append(Spacer(1, 0.15*inch))
            story.append(Paragraph("Description", self.styles['SectionHeader']))
            story.append(Paragraph(escape(project.description), self.styles['Normal']))
        if project.review_comment:
            story.append(Spacer(1, 0.15*inch))
            story.append(Paragraph("Review Comment", self.styles['SectionHeader']))
            story.append(Paragraph(escape(project.review_comment), self.styles['Normal']))
        return story

    def _build_subtasks(self, subtasks: List[Any]) -> List:
        story = [Paragraph(f"Subtasks ({len(subtasks)})", self.styles['SectionHeader'])]
        if not subtasks:
            story.append(Paragraph("No subtasks.", self.styles['Normal']))
            return story

        rows = [['Title', 'Assignee', 'Due', 'Done']]
        for subtask in subtasks:
            rows.append([
                subtask.title,
                subtask.assignee.full_name if subtask.assignee else '',
                self._format_date(subtask.due_date),
                'Yes' if subtask.completed else 'No',
            ])
        table = Table([[self._cell(c) for c in row] for row in rows],
                      colWidths=[3*inch, 1.6*inch, 1.1*inch, 0.7*inch])
        table.setStyle(GRID_STYLE)
        story.append(table)
        return story

    def _build_comments(self, comments: List[Any]) -> List:
        story = [Paragraph(f"Comments ({len(comments)})", self.styles['SectionHeader'])]
        if not comments:
            story.append(Paragraph("No comments.", self.styles['Normal']))
            return story

        for comment in comments:
            author = comment.user.full_name if comment.user else comment.user_id
            story.append(Paragraph(
                f"<b>{escape(author)}</b> ({self._format_date(comment.created_at)})",
                self.styles['Normal']
            ))
            story.append(Paragraph(escape(comment.content), self.styles['Normal']))
            story.append(Spacer(1, 0.08*inch))
        return story

    def _cell(self, value: Any) -> Paragraph:
        return Paragraph(escape(str(value)) if value is not None else '', self.styles['Normal'])

    def _enum_value(self, value: Any) -> str:
        return getattr(value, 'value', value) or ''

    def _add_page_number(self, canv: canvas.Canvas, doc):
        """Add page number at the bottom center."""
        page_num_text = f"Page {canv.getPageNumber()}"
        canv.setFont('Helvetica', 9)
        width, height = A4
        canv.drawCentredString(width / 2.0, 0.4 * inch, page_num_text)

    def _format_date(self, value: Optional[datetime]) -> str:
        """Format date for display"""
        if not value:
            return 'N/A'
        return value.strftime('%d-%m-%Y')


report_service = ProjectReportService()


def render_project_report(project: Project, subtasks: List[Any], comments: List[Any]) -> Dict[str, Any]:
    """PDF bytes and file name for a project export"""
    buffer = report_service.generate_project_pdf(project, subtasks, comments)
    return {"content": buffer.getvalue(), "filename": export_filename(project.title)}
