"""
Django admin registrations for the records models.

Only minimal configuration is applied; the admin is mainly used during
development to inspect visits, uploaded files and doctor requests.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    DoctorProfile,
    DoctorRequest,
    EcgRecord,
    PatientProfile,
    User,
    Visit,
    VisitAttachment,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'first_name', 'last_name', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name', 'email')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'national_id', 'sex', 'date_of_birth', 'phone')
    search_fields = ('national_id', 'user__username', 'user__first_name', 'user__last_name')


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'license_number')
    search_fields = ('user__username', 'user__last_name', 'specialization')


class VisitAttachmentInline(admin.TabularInline):
    model = VisitAttachment
    extra = 0
    readonly_fields = ('file', 'content_type', 'size', 'uploaded_by', 'uploaded_at')


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'visit_date', 'status', 'medication_count')
    list_filter = ('status',)
    search_fields = ('patient__username', 'patient__patient_profile__national_id')
    readonly_fields = ('medication_count', 'created_at', 'updated_at')
    inlines = [VisitAttachmentInline]


@admin.register(EcgRecord)
class EcgRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'image', 'uploaded_by', 'created_at')


@admin.register(DoctorRequest)
class DoctorRequestAdmin(admin.ModelAdmin):
    list_display = ('request_token', 'first_name', 'last_name', 'national_id', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('request_token', 'national_id', 'last_name', 'email')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
