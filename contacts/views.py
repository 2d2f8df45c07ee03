import logging

from asgiref.sync import sync_to_async
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import redirect, render

from accounts.permissions import user_role
from datastore.client import get_store
from datastore.errors import NotFound, StoreError
from datastore.loaders import load_detail
from datastore.notifications import DESTRUCTIVE, Notifier

from . import services
from .editing import ContactEditor
from .forms import ContactEditForm

logger = logging.getLogger(__name__)


@login_required
def list_contacts(request):
    status = request.GET.get("status") or None
    filters = {"status": status} if status else {}
    contacts = []
    try:
        contacts = services.list_contacts(get_store(), **filters)
    except StoreError as e:
        Notifier(request)("Error", f"Error fetching contacts: {e}", DESTRUCTIVE)
    return render(
        request,
        "contacts/list.html",
        {"contacts": contacts, "status": status, "active_nav": "contacts"},
    )


@login_required
async def contact_detail(request, contact_id):
    loader = services.ContactDetailLoader(get_store(), Notifier(request))
    state = await load_detail(loader, contact_id)
    return await sync_to_async(render)(
        request,
        "contacts/detail.html",
        {"state": state, "contact": state.parent, "referrals": state.children, "active_nav": "contacts"},
    )


@login_required
def edit_contact(request, contact_id):
    store = get_store()
    notify = Notifier(request)
    try:
        contact = services.get_contact(store, contact_id)
    except NotFound:
        notify("Error", "Contact not found.", DESTRUCTIVE)
        return redirect("contacts:list")
    except StoreError as e:
        notify("Error", f"Error fetching contact details: {e}", DESTRUCTIVE)
        return redirect("contacts:list")

    editor = ContactEditor(store, user_role(request.user), notify)
    editor.open(contact)

    if request.method == "POST":
        form = ContactEditForm(request.POST, editor=editor, store=store)
        if form.is_valid():
            editor.update(form.editor_values())
            if editor.submit():
                return redirect("contacts:detail", contact_id=editor.record["id"])
        else:
            notify("Error", form.first_error(), DESTRUCTIVE)
    else:
        form = ContactEditForm(editor=editor, store=store)

    return render(
        request,
        "contacts/edit.html",
        {"form": form, "contact": contact, "editor": editor, "active_nav": "contacts"},
    )


@login_required
def neighborhood_options(request):
    city_id = request.GET.get("city") or ""
    names = [n["name"] for n in services.neighborhoods_for_city(get_store(), city_id)]
    return JsonResponse({"city": city_id, "neighborhoods": names})


@login_required
def monthly_birthdays(request):
    birthdays = services.monthly_birthdays(get_store())
    return render(
        request,
        "contacts/birthdays.html",
        {"birthdays": birthdays, "active_nav": "birthdays"},
    )
