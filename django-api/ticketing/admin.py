from django.contrib import admin

from ticketing.models import Attendee, Booking, Event, TicketType


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 1
    readonly_fields = ["sold_count"]


class AttendeeInline(admin.TabularInline):
    model = Attendee
    extra = 0
    readonly_fields = ["credential", "has_attended", "checked_in_at"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "location", "starts_at", "is_published"]
    list_filter = ["category", "is_published"]
    search_fields = ["name", "location"]
    inlines = [TicketTypeInline]


@admin.register(TicketType)
class TicketTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price", "sold_count", "max_total", "is_active"]
    list_filter = ["is_active", "event"]
    readonly_fields = ["sold_count"]


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ["code", "user", "event", "ticket_type", "quantity", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["code", "user__username", "user__email"]
    readonly_fields = ["code", "quantity", "amount", "status"]
    inlines = [AttendeeInline]


@admin.register(Attendee)
class AttendeeAdmin(admin.ModelAdmin):
    list_display = ["name", "email", "booking", "has_attended", "checked_in_at"]
    list_filter = ["has_attended"]
    search_fields = ["name", "email"]
    readonly_fields = ["credential", "checked_in_at"]
