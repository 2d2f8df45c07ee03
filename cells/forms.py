from django import forms

from accounts.permissions import can_edit_field, enforce_restricted_fields
from contacts.forms import RESTRICTED_NOTE
from contacts import services as contact_services

from .services import WEEKDAYS

NO_LEADER = "no-leader"
NO_NEIGHBORHOOD = "no-neighborhood"


class CellEditForm(forms.Form):
    name = forms.CharField(label="Name", max_length=255)
    address = forms.CharField(label="Address", max_length=500, required=False)
    meeting_day = forms.TypedChoiceField(
        label="Meeting day",
        coerce=int,
        choices=list(enumerate(WEEKDAYS)),
    )
    meeting_time = forms.TimeField(
        label="Meeting time",
        widget=forms.TimeInput(attrs={"type": "time"}, format="%H:%M"),
    )
    leader_id = forms.ChoiceField(label="Leader", required=False)
    neighborhood_id = forms.ChoiceField(label="Neighborhood", required=False)
    active = forms.BooleanField(label="Active", required=False)

    def __init__(self, data=None, *, cell, store, role, **kwargs):
        initial = {
            "name": cell.get("name") or "",
            "address": cell.get("address") or "",
            "meeting_day": cell.get("meeting_day") if cell.get("meeting_day") is not None else 0,
            "meeting_time": (cell.get("meeting_time") or "")[:5],
            "leader_id": cell.get("leader_id") or NO_LEADER,
            "neighborhood_id": cell.get("neighborhood_id") or NO_NEIGHBORHOOD,
            "active": bool(cell.get("active")),
        }
        super().__init__(data, initial=initial, **kwargs)
        self.cell = cell
        self.role = role

        leaders = [(p["id"], p["name"]) for p in contact_services.active_profiles(store)]
        if cell.get("leader_id") and cell["leader_id"] not in {k for k, _ in leaders}:
            leaders.append((cell["leader_id"], cell["leader_id"]))
        self.fields["leader_id"].choices = [(NO_LEADER, "No leader")] + leaders

        city_names = {c["id"]: c["name"] for c in contact_services.cities(store)}
        neighborhoods = []
        for n in contact_services.all_neighborhoods(store):
            city = city_names.get(n.get("city_id"))
            neighborhoods.append((n["id"], f"{n['name']} ({city})" if city else n["name"]))
        if cell.get("neighborhood_id") and cell["neighborhood_id"] not in {k for k, _ in neighborhoods}:
            neighborhoods.append((cell["neighborhood_id"], cell["neighborhood_id"]))
        self.fields["neighborhood_id"].choices = [(NO_NEIGHBORHOOD, "No neighborhood")] + neighborhoods

        if not can_edit_field(role, "leader_id", "cells"):
            self.fields["leader_id"].disabled = True
            self.fields["leader_id"].help_text = RESTRICTED_NOTE

    def payload(self):
        data = self.cleaned_data
        leader_id = data.get("leader_id")
        if not leader_id or leader_id == NO_LEADER:
            leader_id = None
        neighborhood_id = data.get("neighborhood_id")
        if not neighborhood_id or neighborhood_id == NO_NEIGHBORHOOD:
            neighborhood_id = None
        payload = {
            "name": data["name"].strip(),
            "address": (data.get("address") or "").strip(),
            "meeting_day": data["meeting_day"],
            "meeting_time": data["meeting_time"].strftime("%H:%M:%S"),
            "leader_id": leader_id,
            "neighborhood_id": neighborhood_id,
            "active": bool(data.get("active")),
        }
        return enforce_restricted_fields(payload, self.cell, self.role, entity="cells")
