from dataclasses import dataclass
from typing import List, Optional

from app.domains.documents.blocks import Block, BlockType, new_block

TEMPLATE_EMOJI = "📄"


@dataclass(frozen=True)
class Template:
    id: str
    title: str
    description: str
    category: str  # note, doc, database, project, personal, other
    popular: bool = False


TEMPLATES: List[Template] = [
    Template("empty-doc", "Blank document", "Start from scratch with a blank document.", "doc", popular=True),
    Template("task-list", "Task list", "Keep track of your daily tasks and projects.", "note", popular=True),
    Template("meeting-notes", "Meeting notes", "Capture notes, decisions and next steps during meetings.", "note"),
    Template("project-plan", "Project plan", "Plan and organize your projects from start to finish.", "project", popular=True),
    Template("weekly-planner", "Weekly planner", "Organize your week and track your goals.", "personal"),
    Template("reading-list", "Reading list", "Collect books and articles you want to read.", "personal"),
    Template("product-roadmap", "Product roadmap", "Lay out upcoming features and milestones.", "project"),
    Template("knowledge-base", "Knowledge base", "Document processes and answers for your team.", "database"),
]


def get_template(template_id: str) -> Optional[Template]:
    for template in TEMPLATES:
        if template.id == template_id:
            return template
    return None


def template_blocks(template: Template) -> List[Block]:
    """Seed blocks: a heading with the title and a paragraph with the description"""
    heading = new_block(block_type=BlockType.HEADING_1, content=template.title)
    paragraph = new_block([heading], BlockType.PARAGRAPH, template.description)
    return [heading, paragraph]
