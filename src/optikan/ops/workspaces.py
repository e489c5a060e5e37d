"""Workspace mutations."""

from __future__ import annotations

from optikan.cache.keys import boards_key, workspaces_key
from optikan.ids import new_id
from optikan.models import Workspace, now_iso
from optikan.ops._common import merge_confirmed, patch_item, without
from optikan.patch import WorkspacePatch
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import check_patch, optional_text, require_id, require_title


async def create_workspace(
    session: Session, name: str, color: str | None = None, *, workspace_id: str | None = None
) -> Outcome:
    name = require_title(name, "Workspace name")
    color = optional_text(color, "color") or None
    workspace_id = require_id(workspace_id) if workspace_id is not None else new_id()
    stamp = now_iso()
    workspace = Workspace(id=workspace_id, name=name, color=color, created_at=stamp, updated_at=stamp)
    key = workspaces_key()

    return await session.run(
        Transaction(
            name="create_workspace",
            dispatch=lambda: session.remote.create_workspace(workspace_id, name, color),
            speculate={key: lambda workspaces: [*workspaces, workspace]},
            reconcile={key: merge_confirmed},
        )
    )


async def update_workspace(session: Session, workspace_id: str, patch: WorkspacePatch) -> Outcome:
    workspace_id = require_id(workspace_id, "workspace_id")
    patch = check_patch(patch, titles=("name",))
    stamp = now_iso()
    key = workspaces_key()

    return await session.run(
        Transaction(
            name="update_workspace",
            dispatch=lambda: session.remote.update_workspace(workspace_id, patch.present()),
            speculate={key: lambda workspaces: patch_item(workspaces, workspace_id, lambda w: patch.apply(w, stamp))},
            reconcile={key: merge_confirmed},
        )
    )


async def delete_workspace(session: Session, workspace_id: str) -> Outcome:
    """Delete an empty workspace. The service refuses while boards remain."""
    workspace_id = require_id(workspace_id, "workspace_id")

    return await session.run(
        Transaction(
            name="delete_workspace",
            dispatch=lambda: session.remote.delete_workspace(workspace_id),
            speculate={workspaces_key(): lambda workspaces: without(workspaces, workspace_id)},
            settle_keys=(boards_key(),),
        )
    )
