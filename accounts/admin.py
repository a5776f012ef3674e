from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import CustomUser, DonorProfile


class DonorProfileInline(admin.StackedInline):
    model = DonorProfile
    can_delete = False
    verbose_name_plural = "Donor Profile"
    readonly_fields = ("last_donation_date",)


class CustomUserAdmin(UserAdmin):
    inlines = (DonorProfileInline,)

    list_display = ("username", "email", "role", "is_active", "is_staff")
    list_filter = ("role", "is_active", "is_staff")

    fieldsets = UserAdmin.fieldsets + (
        ("Blood Bank Role", {"fields": ("role", "phone_number")}),
    )


admin.site.register(CustomUser, CustomUserAdmin)


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "blood_group", "is_active", "last_donation_date")
    list_filter = ("blood_group", "is_active")
    search_fields = ("user__username", "user__email")
    readonly_fields = ("last_donation_date", "created_at", "updated_at")
