from django.urls import path
from . import views

app_name = "cells"

urlpatterns = [
    path("", views.list_cells, name="list"),
    path("<str:cell_id>/", views.cell_detail, name="detail"),
    path("<str:cell_id>/edit/", views.edit_cell, name="edit"),
]
