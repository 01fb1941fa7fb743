from django.contrib import admin

from livepulse.live.models import LiveSession
from livepulse.live.models import SessionPresenter


class SessionPresenterInline(admin.TabularInline):
    model = SessionPresenter
    extra = 0
    fields = ["display_order", "presenter_type", "status", "display_name"]


@admin.register(LiveSession)
class LiveSessionAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "code", "created_at"]
    search_fields = ["title", "code"]
    inlines = [SessionPresenterInline]


@admin.register(SessionPresenter)
class SessionPresenterAdmin(admin.ModelAdmin):
    list_display = ["id", "session", "display_name", "presenter_type", "status"]
    list_filter = ["presenter_type", "status"]
    search_fields = ["display_name", "display_title"]
