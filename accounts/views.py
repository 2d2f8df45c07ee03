from django.shortcuts import redirect, render
from django.urls import reverse
from .permissions import is_elevated


def home(request):
    if request.user.is_authenticated:
        ctx = {
            "name": request.user.display_name,
            "role": request.user.get_role_display(),
            "is_elevated": is_elevated(request.user.role),
            "cells_url": reverse("cells:list"),
            "contacts_url": reverse("contacts:list"),
            "birthdays_url": reverse("contacts:birthdays"),
            "active_nav": "dashboard",
        }
        return render(request, "home.html", ctx)
    return redirect("account_login")
