"""Django admin configuration for workshop accounts and clients."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Client, User

if admin.site.is_registered(User):
    admin.site.unregister(User)


class ClientInline(admin.TabularInline):
    """Clients listed on the owning workshop's page."""

    model = Client
    extra = 0
    can_delete = False
    fields = ('name', 'phone', 'email')


class WorkshopUserAdmin(UserAdmin):
    model = User
    list_display = ['username', 'business_name', 'email', 'phone_number', 'is_staff']

    fieldsets = UserAdmin.fieldsets + (
        ('Workshop & Notifications', {'fields': ('business_name', 'phone_number', 'notify_sms', 'notify_email')}),
    )
    inlines = [ClientInline]


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    """Admin configuration for clients."""

    list_display = ('id', 'name', 'phone', 'email', 'tailor', 'created_at')
    search_fields = ('name', 'phone', 'email', 'tailor__username')
    list_filter = ('created_at',)

    # Clients own orders, invoices and payments; they are never deleted here.
    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(User, WorkshopUserAdmin)
