from django.contrib import admin

from .models import Appointment, BloodRequest, Donation


class AppointmentInline(admin.TabularInline):
    model = Appointment
    extra = 0
    fields = ("donor", "scheduled_date", "scheduled_time", "status", "units_collected")
    readonly_fields = fields
    can_delete = False
    show_change_link = True


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "blood_group",
        "units_requested",
        "units_collected",
        "urgency",
        "status",
        "awaiting_donations",
        "requester",
        "collection_date",
        "created_at",
    )
    list_filter = ("status", "urgency", "blood_group", "awaiting_donations", "reschedule_requested")
    search_fields = ("patient_name", "hospital_name", "contact_number", "requester__username")
    ordering = ("-created_at",)

    # status and counters are owned by blood.lifecycle
    readonly_fields = (
        "status",
        "units_collected",
        "awaiting_donations",
        "allocation",
        "approved_at",
        "approved_by",
        "rejected_at",
        "fulfilled_at",
        "collected_at",
        "verified_at",
        "verified_by",
        "no_show_at",
        "cancelled_at",
        "donors_notified",
        "donors_responded",
        "appointments_scheduled",
        "created_at",
        "updated_at",
    )

    fieldsets = (
        ("Need", {
            "fields": ("requester", "blood_group", "units_requested", "urgency", "patient_name", "hospital_name", "contact_number", "notes")
        }),
        ("State", {
            "fields": ("status", "units_collected", "awaiting_donations", "allocation", "fulfilled_at")
        }),
        ("Decision", {
            "fields": ("approved_at", "approved_by", "rejected_at", "rejection_reason")
        }),
        ("Collection", {
            "fields": (
                "collection_date", "collection_location", "collection_instructions",
                "collected_at", "verified_at", "verified_by",
            )
        }),
        ("Reschedule", {
            "fields": ("reschedule_requested", "reschedule_reason", "requested_collection_date", "original_collection_date")
        }),
        ("Closure", {
            "fields": ("no_show_at", "no_show_reason", "cancelled_at", "cancellation_reason")
        }),
        ("Outreach", {
            "fields": ("donors_notified", "donors_responded", "appointments_scheduled")
        }),
        ("Timestamps", {
            "fields": ("created_at", "updated_at")
        }),
    )
    inlines = (AppointmentInline,)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "donor", "request", "scheduled_date", "scheduled_time", "kind", "status", "units_collected")
    list_filter = ("status", "kind", "scheduled_date")
    search_fields = ("donor__user__username", "location")
    ordering = ("-scheduled_date",)
    readonly_fields = ("status", "confirmed_at", "started_at", "completed_at", "created_at", "updated_at")


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ("id", "donor", "units", "collected_on", "location", "request", "eligibility_warning")
    list_filter = ("collected_on",)
    search_fields = ("donor__user__username", "location", "notes")
    ordering = ("-collected_on",)
    readonly_fields = ("batch", "eligibility_warning", "created_at")
