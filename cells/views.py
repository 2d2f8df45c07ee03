import logging

from asgiref.sync import sync_to_async
from django.contrib.auth.decorators import login_required
from django.shortcuts import redirect, render

from accounts.permissions import user_role
from datastore.client import get_store
from datastore.errors import NotFound, StoreError
from datastore.loaders import load_detail
from datastore.notifications import DESTRUCTIVE, Notifier

from . import services
from .forms import CellEditForm

logger = logging.getLogger(__name__)


@login_required
def list_cells(request):
    cells = []
    try:
        cells = services.list_cells(get_store())
    except StoreError as e:
        Notifier(request)("Error", f"Error fetching cells: {e}", DESTRUCTIVE)
    for cell in cells:
        cell["meeting_label"] = services.meeting_label(cell)
    return render(request, "cells/list.html", {"cells": cells, "active_nav": "cells"})


@login_required
async def cell_detail(request, cell_id):
    store = get_store()
    loader = services.CellDetailLoader(store, Notifier(request))
    state = await load_detail(loader, cell_id)
    ctx = {"state": state, "cell": state.parent, "members": state.children, "active_nav": "cells"}
    if state.found:
        ctx["meeting_label"] = services.meeting_label(state.parent)
        ctx["leader_name"] = await sync_to_async(services.leader_name)(
            store, state.parent.get("leader_id")
        )
    return await sync_to_async(render)(request, "cells/detail.html", ctx)


@login_required
def edit_cell(request, cell_id):
    store = get_store()
    notify = Notifier(request)
    try:
        cell = store.get("cells", cell_id)
    except NotFound:
        notify("Error", "Cell not found.", DESTRUCTIVE)
        return redirect("cells:list")
    except StoreError as e:
        notify("Error", f"Error fetching cell details: {e}", DESTRUCTIVE)
        return redirect("cells:list")

    role = user_role(request.user)
    if request.method == "POST":
        form = CellEditForm(request.POST, cell=cell, store=store, role=role)
        if form.is_valid():
            try:
                updated = services.update_cell(store, cell_id, form.payload())
            except StoreError as e:
                logger.error("Error updating cell %s: %s", cell_id, e)
                notify("Error", "Error updating cell!", DESTRUCTIVE)
            else:
                notify("Success", "Cell updated successfully!")
                return redirect("cells:detail", cell_id=updated["id"])
    else:
        form = CellEditForm(cell=cell, store=store, role=role)
    return render(
        request,
        "cells/edit.html",
        {"form": form, "cell": cell, "active_nav": "cells"},
    )
