from django.urls import path
from . import views

app_name = "contacts"

urlpatterns = [
    path("", views.list_contacts, name="list"),
    path("birthdays/", views.monthly_birthdays, name="birthdays"),
    path("neighborhoods/", views.neighborhood_options, name="neighborhoods"),
    path("<str:contact_id>/", views.contact_detail, name="detail"),
    path("<str:contact_id>/edit/", views.edit_contact, name="edit"),
]
