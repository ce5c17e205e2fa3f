"""
Admin configuration for families app.
"""
from django.contrib import admin
from .models import Family, Student


class StudentInline(admin.TabularInline):
    model = Student
    extra = 0
    fields = ['first_name', 'last_name', 'level', 'is_active']


class FamilyAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'postal_code', 'department', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['first_name', 'last_name', 'postal_code', 'city']
    # Status follows the settlement notes
    readonly_fields = ['id', 'status', 'created_at', 'updated_at']
    inlines = [StudentInline]

    fieldsets = (
        (None, {
            'fields': ('first_name', 'last_name', 'status')
        }),
        ('Contact', {
            'fields': ('email', 'phone', 'address', 'city', 'postal_code')
        }),
        ('Notes', {
            'fields': ('notes',)
        }),
        ('Metadata', {
            'fields': ('id', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )


class StudentAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'family', 'level', 'is_active']
    list_filter = ['level', 'is_active']
    search_fields = ['first_name', 'last_name', 'family__last_name']


admin.site.register(Family, FamilyAdmin)
admin.site.register(Student, StudentAdmin)
