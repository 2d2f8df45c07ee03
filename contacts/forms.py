from django import forms

from . import services
from .editing import BOOLEAN_FIELDS, NO_NEIGHBORHOOD, SENTINELS

RESTRICTED_NOTE = "(Only admins can edit)"


def _select_value(field, value):
    return value or SENTINELS[field]


class ContactEditForm(forms.Form):
    name = forms.CharField(label="Name *", required=False, max_length=255)
    whatsapp = forms.CharField(
        label="WhatsApp *",
        required=False,
        max_length=32,
        widget=forms.TextInput(attrs={"type": "tel"}),
    )
    city_id = forms.ChoiceField(label="City", required=False)
    neighborhood = forms.ChoiceField(label="Neighborhood *", required=False)
    loaded_city_id = forms.CharField(required=False, widget=forms.HiddenInput)
    birth_date = forms.DateField(
        label="Birth date",
        required=False,
        widget=forms.DateInput(attrs={"type": "date"}, format="%Y-%m-%d"),
    )
    age = forms.IntegerField(label="Age", required=False, min_value=0, max_value=150)
    status = forms.ChoiceField(label="Status", choices=services.STATUS_CHOICES)
    encounter_with_god = forms.BooleanField(label="Attended Encounter with God?", required=False)
    baptized = forms.BooleanField(label="Baptized", required=False)
    founder = forms.BooleanField(label="Founder", required=False)
    leader_id = forms.ChoiceField(label="Responsible leader", required=False)
    cell_id = forms.ChoiceField(label="Cell", required=False)
    referred_by = forms.ChoiceField(label="Referred by", required=False)
    pipeline_stage_id = forms.ChoiceField(label="Discipleship stage", required=False)
    ministry_id = forms.ChoiceField(label="Ministry", required=False)
    photo_url = forms.URLField(label="Photo URL", required=False, max_length=1024)

    def __init__(self, data=None, *, editor, store, **kwargs):
        initial = self._initial_from(editor.form_data)
        if data is not None:
            data = self._reset_neighborhood_on_city_change(data)
        super().__init__(data, initial=initial, **kwargs)
        self.editor = editor

        city_id = self._displayed_city(initial)
        contact_id = (editor.record or {}).get("id")
        profiles = services.active_profiles(store)

        self._set_choices(
            "city_id",
            "No city",
            [(c["id"], c["name"]) for c in services.cities(store)],
        )
        self._set_choices(
            "leader_id",
            "No leader",
            [(p["id"], f"{p['name']} ({p.get('role') or '-'})") for p in profiles],
        )
        self._set_choices(
            "cell_id",
            "No cell",
            [(c["id"], c["name"]) for c in services.active_cells(store)],
        )
        referrals = [(c["id"], c["name"]) for c in services.referral_candidates(store, contact_id)]
        referrals += [(p["id"], f"{p['name']} (Leader)") for p in profiles]
        self._set_choices("referred_by", "No referral", referrals)
        self._set_choices(
            "pipeline_stage_id",
            "No stage",
            [(s["id"], s["name"]) for s in services.active_pipeline_stages(store)],
        )
        self._set_choices(
            "ministry_id",
            "No ministry",
            [(m["id"], m["name"]) for m in services.active_ministries(store)],
        )

        names = [n["name"] for n in services.neighborhoods_for_city(store, city_id)]
        current = self.data.get("neighborhood") if self.is_bound else initial["neighborhood"]
        if current and current != NO_NEIGHBORHOOD and current not in names:
            names.append(current)
        self.fields["neighborhood"].choices = [(NO_NEIGHBORHOOD, "No neighborhood")] + [
            (n, n) for n in names
        ]
        if not self.is_bound:
            self.initial["loaded_city_id"] = city_id

        status = self.initial.get("status")
        if status and status not in dict(services.STATUS_CHOICES):
            # Statuses the form does not offer stay selectable so they survive an edit
            self.fields["status"].choices = services.STATUS_CHOICES + [(status, status.capitalize())]

        for field in ("cell_id", "leader_id"):
            if not editor.can_edit(field):
                self.fields[field].disabled = True
                self.fields[field].help_text = RESTRICTED_NOTE

    @staticmethod
    def _initial_from(form_data):
        initial = dict(form_data)
        for field in SENTINELS:
            initial[field] = _select_value(field, form_data.get(field))
        initial["neighborhood"] = form_data.get("neighborhood") or NO_NEIGHBORHOOD
        initial["loaded_city_id"] = form_data.get("city_id") or ""
        return initial

    @staticmethod
    def _reset_neighborhood_on_city_change(data):
        """
        The neighborhood list is built for ``loaded_city_id``. When the posted
        city differs, the chosen neighborhood belongs to another city: clear it
        and rebuild the list for the new city.
        """
        city = data.get("city_id") or ""
        if city == SENTINELS["city_id"]:
            city = ""
        if city == (data.get("loaded_city_id") or ""):
            return data
        data = data.copy()
        data["neighborhood"] = NO_NEIGHBORHOOD
        data["loaded_city_id"] = city
        return data

    def _displayed_city(self, initial):
        if self.is_bound:
            return self.data.get("loaded_city_id") or ""
        city = initial.get("city_id")
        return "" if city == SENTINELS["city_id"] else city

    def _set_choices(self, field, empty_label, choices):
        value = self.initial.get(field)
        known = {str(k) for k, _ in choices}
        if value and value != SENTINELS[field] and str(value) not in known:
            # Keep the stored value selectable even when it left the active list
            choices = choices + [(value, str(value))]
        self.fields[field].choices = [(SENTINELS[field], empty_label)] + choices

    def clean_neighborhood(self):
        value = self.cleaned_data.get("neighborhood") or ""
        return "" if value == NO_NEIGHBORHOOD else value

    def clean(self):
        cleaned = super().clean()
        for field, sentinel in SENTINELS.items():
            if cleaned.get(field) == sentinel:
                cleaned[field] = ""
        return cleaned

    def editor_values(self):
        values = {k: v for k, v in self.cleaned_data.items() if k != "loaded_city_id"}
        for field in BOOLEAN_FIELDS:
            values[field] = bool(values.get(field))
        values["birth_date"] = values.get("birth_date") or ""
        return values

    def first_error(self):
        for field, errors in self.errors.items():
            label = self.fields[field].label if field in self.fields else ""
            return f"{label.rstrip(' *')}: {errors[0]}" if label else errors[0]
        return ""
