"""
Tests for projects and tasks.

Tests cover:
- Project CRUD with pagination and workspace scoping
- Task creation defaults, task codes and the assignee membership guard
- completed_at tracking on status changes
- Task list filters
- Permission checks per role
"""

import logging
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models
from errors import NotFoundError
from services import task_service
from tests.conftest import FROZEN_NOW, auth_headers_for, make_user

logger = logging.getLogger(__name__)


def _tasks_url(workspace_id: int, project_id: int) -> str:
    return f"/api/workspaces/{workspace_id}/projects/{project_id}/tasks"


# ============== Projects ==============


def test_create_project_defaults_emoji(client: TestClient, workspace: models.Workspace, owner_headers):
    response = client.post(
        f"/api/workspaces/{workspace.id}/projects", json={"name": "Roadmap"}, headers=owner_headers
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["emoji"] == "📊"
    assert data["workspace_id"] == workspace.id


def test_create_project_forbidden_for_member(
    client: TestClient, member_user: models.User, workspace: models.Workspace
):
    response = client.post(
        f"/api/workspaces/{workspace.id}/projects",
        json={"name": "Not allowed"},
        headers=auth_headers_for(member_user),
    )
    assert response.status_code == 403


def test_list_projects_paginates_newest_first(
    client: TestClient, workspace: models.Workspace, owner_headers
):
    for name in ("one", "two", "three"):
        client.post(f"/api/workspaces/{workspace.id}/projects", json={"name": name}, headers=owner_headers)

    first = client.get(
        f"/api/workspaces/{workspace.id}/projects",
        params={"page_size": 2, "page_number": 1},
        headers=owner_headers,
    ).json()
    second = client.get(
        f"/api/workspaces/{workspace.id}/projects",
        params={"page_size": 2, "page_number": 2},
        headers=owner_headers,
    ).json()

    assert [p["name"] for p in first["projects"]] == ["three", "two"]
    assert [p["name"] for p in second["projects"]] == ["one"]
    assert first["pagination"] == {
        "page_size": 2,
        "page_number": 1,
        "total_count": 3,
        "total_pages": 2,
        "skip": 0,
    }
    assert second["pagination"]["skip"] == 2


def test_project_is_scoped_to_its_workspace(
    client: TestClient, project: models.Project, member_user: models.User
):
    # member_user owns their own default workspace; the project lives elsewhere
    headers = auth_headers_for(member_user)
    response = client.get(
        f"/api/workspaces/{member_user.current_workspace_id}/projects/{project.id}", headers=headers
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Project not found or does not belong to this workspace"


def test_update_project(client: TestClient, workspace: models.Workspace, project: models.Project, owner_headers):
    response = client.put(
        f"/api/workspaces/{workspace.id}/projects/{project.id}",
        json={"name": "Relaunch", "emoji": "🔥"},
        headers=owner_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Relaunch"
    assert data["emoji"] == "🔥"
    assert data["description"] == "Launch plan"


def test_delete_project_removes_tasks_and_comments(
    client: TestClient, test_db: Session, workspace: models.Workspace, project: models.Project,
    task: models.Task, owner_user: models.User, owner_headers
):
    test_db.add(models.Comment(task_id=task.id, user_id=owner_user.id, message="hi", attachments=[]))
    test_db.commit()

    response = client.delete(f"/api/workspaces/{workspace.id}/projects/{project.id}", headers=owner_headers)

    assert response.status_code == 200
    assert test_db.query(models.Project).count() == 0
    assert test_db.query(models.Task).count() == 0
    assert test_db.query(models.Comment).count() == 0


def test_delete_project_forbidden_for_member(
    client: TestClient, member_user: models.User, workspace: models.Workspace, project: models.Project
):
    response = client.delete(
        f"/api/workspaces/{workspace.id}/projects/{project.id}", headers=auth_headers_for(member_user)
    )
    assert response.status_code == 403


# ============== Task creation ==============


def test_create_task_defaults(
    client: TestClient, member_user: models.User, workspace: models.Workspace, project: models.Project
):
    response = client.post(
        _tasks_url(workspace.id, project.id),
        json={"title": "Draft copy"},
        headers=auth_headers_for(member_user),
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["priority"] == "MEDIUM"
    assert data["status"] == "TODO"
    assert data["task_code"].startswith("task-")
    assert len(data["task_code"]) == len("task-") + 3
    assert data["created_by"] == member_user.id
    assert data["workspace_id"] == workspace.id
    assert data["completed_at"] is None


def test_create_task_with_member_assignee(
    client: TestClient, member_user: models.User, workspace: models.Workspace, project: models.Project, owner_headers
):
    response = client.post(
        _tasks_url(workspace.id, project.id),
        json={"title": "Review", "assigned_to": member_user.id, "priority": "HIGH"},
        headers=owner_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["assigned_to"] == member_user.id
    assert data["assignee"]["name"] == "Member User"


def test_create_task_rejects_non_member_assignee(
    client: TestClient, test_db: Session, outsider_user: models.User, workspace: models.Workspace,
    project: models.Project, owner_headers
):
    response = client.post(
        _tasks_url(workspace.id, project.id),
        json={"title": "Leak", "assigned_to": outsider_user.id},
        headers=owner_headers,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Assigned user is not a member of the workspace"
    assert test_db.query(models.Task).count() == 0


def test_create_task_in_foreign_project(
    client: TestClient, test_db: Session, outsider_user: models.User, workspace: models.Workspace, owner_headers
):
    foreign_project = models.Project(
        name="Elsewhere", workspace_id=outsider_user.current_workspace_id, created_by=outsider_user.id
    )
    test_db.add(foreign_project)
    test_db.commit()

    response = client.post(
        _tasks_url(workspace.id, foreign_project.id), json={"title": "Sneaky"}, headers=owner_headers
    )

    assert response.status_code == 404
    assert test_db.query(models.Task).count() == 0


def test_create_task_validation(client: TestClient, workspace: models.Workspace, project: models.Project, owner_headers):
    response = client.post(
        _tasks_url(workspace.id, project.id),
        json={"title": "", "priority": "URGENT"},
        headers=owner_headers,
    )

    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"title", "priority"} <= fields


# ============== Task updates ==============


def test_status_changes_track_completion(
    client: TestClient, frozen_clock: datetime, workspace: models.Workspace, project: models.Project,
    task: models.Task, owner_headers
):
    url = f"{_tasks_url(workspace.id, project.id)}/{task.id}"

    done = client.put(url, json={"status": "DONE"}, headers=owner_headers)
    assert done.status_code == 200, done.json()
    completed_at = datetime.fromisoformat(done.json()["completed_at"])
    assert completed_at.replace(tzinfo=timezone.utc) == FROZEN_NOW.replace(tzinfo=timezone.utc)

    reopened = client.put(url, json={"status": "IN_PROGRESS"}, headers=owner_headers)
    assert reopened.json()["completed_at"] is None
    logger.info("✓ completed_at set on DONE and cleared on reopen")


def test_update_task_keeps_unsent_fields(
    client: TestClient, workspace: models.Workspace, project: models.Project, task: models.Task,
    member_user: models.User, owner_headers
):
    url = f"{_tasks_url(workspace.id, project.id)}/{task.id}"
    client.put(url, json={"assigned_to": member_user.id, "description": "Details"}, headers=owner_headers)

    response = client.put(url, json={"title": None, "priority": "LOW"}, headers=owner_headers)

    data = response.json()
    assert data["title"] == "Write announcement"
    assert data["priority"] == "LOW"
    assert data["description"] == "Details"
    assert data["assigned_to"] == member_user.id

    cleared = client.put(url, json={"assigned_to": None}, headers=owner_headers).json()
    assert cleared["assigned_to"] is None


def test_update_task_rejects_non_member_assignee(
    client: TestClient, test_db: Session, outsider_user: models.User, workspace: models.Workspace,
    project: models.Project, task: models.Task, owner_headers
):
    response = client.put(
        f"{_tasks_url(workspace.id, project.id)}/{task.id}",
        json={"assigned_to": outsider_user.id},
        headers=owner_headers,
    )

    assert response.status_code == 404
    test_db.refresh(task)
    assert task.assigned_to is None


def test_update_task_in_wrong_project(
    test_db: Session, owner_user: models.User, workspace: models.Workspace, task: models.Task
):
    other = models.Project(name="Other", workspace_id=workspace.id, created_by=owner_user.id)
    test_db.add(other)
    test_db.commit()

    with pytest.raises(NotFoundError) as exc_info:
        task_service.update_task(workspace.id, other.id, task.id, {"title": "Moved"}, test_db)
    assert exc_info.value.message == "Task not found or task is not part of this project"


# ============== Task reads ==============


@pytest.fixture
def task_board(test_db: Session, owner_user: models.User, member_user: models.User, project: models.Project):
    """A handful of tasks with varied status, priority, assignee and due date."""
    rows = [
        ("Fix login bug", models.TaskStatus.TODO, models.TaskPriority.HIGH, member_user.id, datetime(2026, 3, 20, 9, 0)),
        ("Write docs", models.TaskStatus.IN_PROGRESS, models.TaskPriority.LOW, owner_user.id, None),
        ("Ship release", models.TaskStatus.DONE, models.TaskPriority.HIGH, None, datetime(2026, 3, 20, 17, 30)),
        ("Plan login revamp", models.TaskStatus.BACKLOG, models.TaskPriority.MEDIUM, member_user.id, None),
    ]
    for title, status, priority, assignee, due in rows:
        test_db.add(models.Task(
            title=title,
            status=status,
            priority=priority,
            assigned_to=assignee,
            due_date=due,
            workspace_id=project.workspace_id,
            project_id=project.id,
            created_by=owner_user.id,
        ))
    test_db.commit()


def _titles(response) -> set:
    assert response.status_code == 200, response.json()
    return {t["title"] for t in response.json()["tasks"]}


def test_list_tasks_filters(
    client: TestClient, task_board, member_user: models.User, project: models.Project,
    workspace: models.Workspace, owner_headers
):
    url = f"/api/workspaces/{workspace.id}/tasks"

    assert len(_titles(client.get(url, headers=owner_headers))) == 4
    assert _titles(client.get(url, params={"status": "TODO,DONE"}, headers=owner_headers)) == {
        "Fix login bug", "Ship release"
    }
    assert _titles(client.get(url, params={"priority": "HIGH"}, headers=owner_headers)) == {
        "Fix login bug", "Ship release"
    }
    assert _titles(client.get(url, params={"assigned_to": str(member_user.id)}, headers=owner_headers)) == {
        "Fix login bug", "Plan login revamp"
    }
    assert _titles(client.get(url, params={"keyword": "LOGIN"}, headers=owner_headers)) == {
        "Fix login bug", "Plan login revamp"
    }
    assert _titles(client.get(url, params={"due_date": "2026-03-20"}, headers=owner_headers)) == {
        "Fix login bug", "Ship release"
    }
    assert _titles(
        client.get(url, params={"project_id": project.id, "status": "BACKLOG"}, headers=owner_headers)
    ) == {"Plan login revamp"}


def test_list_tasks_pagination(client: TestClient, task_board, workspace: models.Workspace, owner_headers):
    response = client.get(
        f"/api/workspaces/{workspace.id}/tasks",
        params={"page_size": 3, "page_number": 2},
        headers=owner_headers,
    )

    data = response.json()
    assert len(data["tasks"]) == 1
    assert data["pagination"]["total_count"] == 4
    assert data["pagination"]["total_pages"] == 2


def test_list_tasks_invalid_filter(client: TestClient, workspace: models.Workspace, owner_headers):
    response = client.get(
        f"/api/workspaces/{workspace.id}/tasks", params={"status": "SOMEDAY"}, headers=owner_headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_list_tasks_outsider(client: TestClient, outsider_user: models.User, workspace: models.Workspace):
    response = client.get(f"/api/workspaces/{workspace.id}/tasks", headers=auth_headers_for(outsider_user))
    assert response.status_code == 401


def test_get_task(
    client: TestClient, workspace: models.Workspace, project: models.Project, task: models.Task,
    member_user: models.User
):
    response = client.get(
        f"{_tasks_url(workspace.id, project.id)}/{task.id}", headers=auth_headers_for(member_user)
    )
    assert response.status_code == 200
    assert response.json()["id"] == task.id

    missing = client.get(
        f"{_tasks_url(workspace.id, project.id)}/9999", headers=auth_headers_for(member_user)
    )
    assert missing.status_code == 404


# ============== Task deletion ==============


def test_delete_task_permissions(
    client: TestClient, test_db: Session, workspace: models.Workspace, task: models.Task,
    member_user: models.User, admin_user: models.User
):
    url = f"/api/workspaces/{workspace.id}/tasks/{task.id}"

    assert client.delete(url, headers=auth_headers_for(member_user)).status_code == 403
    assert client.delete(url, headers=auth_headers_for(admin_user)).status_code == 200
    assert test_db.query(models.Task).count() == 0
    assert client.delete(url, headers=auth_headers_for(admin_user)).status_code == 404


def test_delete_task_from_other_workspace(
    client: TestClient, test_db: Session, task: models.Task
):
    intruder = make_user(test_db, "intruder@example.com", "Intruder")

    response = client.delete(
        f"/api/workspaces/{intruder.current_workspace_id}/tasks/{task.id}",
        headers=auth_headers_for(intruder),
    )

    assert response.status_code == 404
    assert test_db.query(models.Task).count() == 1
