from django.contrib import admin
from django.urls import include, path
from accounts import views as accounts_views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/", include("allauth.urls")),
    path("", accounts_views.home, name="home"),
    # app URLs
    path("cells/", include("cells.urls")),
    path("contacts/", include("contacts.urls")),
]
