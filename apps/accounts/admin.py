from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User, Role


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Provides user management including:
    - User listing with role and status
    - Filtering by role and status
    - Search by email and username
    - Bulk role changes
    """

    list_display = [
        'email',
        'username',
        'role_badge',
        'is_active',
        'created_at',
        'last_login',
    ]

    list_filter = [
        'role',
        'is_active',
        'is_staff',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'username', 'password')
        }),
        ('Role', {
            'fields': ('role',),
            'description': 'Admins see soft-deleted movies and reviews.',
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'username', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = [
        'created_at',
        'updated_at',
        'last_login',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    def role_badge(self, obj):
        """Display role as colored badge."""
        if obj.is_admin:
            return format_html(
                '<span style="background: #A47449; color: white; padding: 3px 8px; '
                'border-radius: 10px; font-size: 11px;">Admin</span>'
            )
        return format_html(
            '<span style="background: #ccc; color: #666; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">Reviewer</span>'
        )
    role_badge.short_description = 'Role'
    role_badge.admin_order_field = 'role'

    actions = ['promote_to_admin', 'demote_to_reviewer']

    @admin.action(description='Grant Admin role')
    def promote_to_admin(self, request, queryset):
        count = queryset.update(role=Role.ADMIN)
        self.message_user(request, f'Granted Admin role to {count} user(s).')

    @admin.action(description='Set Reviewer role')
    def demote_to_reviewer(self, request, queryset):
        """Demote selected users (excludes superusers for safety)."""
        safe_queryset = queryset.filter(is_superuser=False)
        count = safe_queryset.update(role=Role.REVIEWER)
        skipped = queryset.count() - count
        msg = f'Set Reviewer role on {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} superuser(s) for safety.'
        self.message_user(request, msg)
