from django.contrib import admin

from .models import AllocationLine, AllocationReceipt, InventoryBatch, InventoryThreshold


@admin.register(InventoryBatch)
class InventoryBatchAdmin(admin.ModelAdmin):
    list_display = ("id", "blood_group", "units", "collection_date", "expiry_date", "location", "donor")
    list_filter = ("blood_group", "expiry_date")
    search_fields = ("location", "donor__user__username")
    ordering = ("blood_group", "expiry_date")
    # units move only through the ledger
    readonly_fields = ("units", "expiry_date", "created_at", "updated_at")


class AllocationLineInline(admin.TabularInline):
    model = AllocationLine
    extra = 0
    can_delete = False
    readonly_fields = ("batch", "blood_group", "expiry_date", "units")


@admin.register(AllocationReceipt)
class AllocationReceiptAdmin(admin.ModelAdmin):
    list_display = ("id", "blood_group", "units", "created_at", "restored_at")
    list_filter = ("blood_group",)
    ordering = ("-created_at",)
    readonly_fields = ("blood_group", "units", "created_at", "restored_at")
    inlines = (AllocationLineInline,)


@admin.register(InventoryThreshold)
class InventoryThresholdAdmin(admin.ModelAdmin):
    list_display = ("blood_group", "minimum_units", "target_units", "alert_enabled", "last_alert_at")
    list_editable = ("minimum_units", "target_units", "alert_enabled")
