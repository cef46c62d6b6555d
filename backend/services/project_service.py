"""Projects inside a workspace."""

import logging
import math
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, joinedload

from errors import NotFoundError
from models import Project

logger = logging.getLogger(__name__)


def get_project_in_workspace(project_id: int, workspace_id: int, db: Session) -> Project:
    project = (
        db.query(Project)
        .filter(Project.id == project_id, Project.workspace_id == workspace_id)
        .first()
    )
    if project is None:
        logger.info(f"Project {project_id} not found in workspace {workspace_id}")
        raise NotFoundError("Project not found or does not belong to this workspace")
    return project


def create_project(
    user_id: int,
    workspace_id: int,
    name: str,
    db: Session,
    emoji: Optional[str] = None,
    description: Optional[str] = None,
) -> Project:
    project = Project(
        name=name,
        description=description,
        workspace_id=workspace_id,
        created_by=user_id,
    )
    if emoji:
        project.emoji = emoji

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(f"Project created: {project.name} (ID: {project.id}) in workspace {workspace_id}")
    return project


def list_projects(workspace_id: int, page_size: int, page_number: int, db: Session) -> Dict[str, Any]:
    """Newest first, paginated."""
    query = db.query(Project).filter(Project.workspace_id == workspace_id)
    total_count = query.count()
    skip = (page_number - 1) * page_size

    projects = (
        query.options(joinedload(Project.creator))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .offset(skip)
        .limit(page_size)
        .all()
    )
    return {
        "projects": projects,
        "pagination": {
            "page_size": page_size,
            "page_number": page_number,
            "total_count": total_count,
            "total_pages": math.ceil(total_count / page_size),
            "skip": skip,
        },
    }


def update_project(
    project_id: int,
    workspace_id: int,
    db: Session,
    name: Optional[str] = None,
    emoji: Optional[str] = None,
    description: Optional[str] = None,
) -> Project:
    project = get_project_in_workspace(project_id, workspace_id, db)

    if name:
        project.name = name
    if emoji:
        project.emoji = emoji
    if description:
        project.description = description

    db.commit()
    db.refresh(project)
    logger.info(f"Project updated: {project.name} (ID: {project_id})")
    return project


def delete_project(project_id: int, workspace_id: int, db: Session) -> None:
    """Delete a project; its tasks and their comments go with it."""
    project = get_project_in_workspace(project_id, workspace_id, db)
    db.delete(project)
    db.commit()
    logger.info(f"Project deleted: {project_id} from workspace {workspace_id}")
