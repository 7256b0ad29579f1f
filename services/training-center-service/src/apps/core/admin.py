from django.contrib import admin
from .models import Certificate, Enrollment, Exam, ExamAttempt, Question, QueueEntry, TrainingSession


@admin.register(TrainingSession)
class TrainingSessionAdmin(admin.ModelAdmin):
    list_display = ['title', 'scheduled_start', 'status', 'enrolled_count', 'max_capacity']
    list_filter = ['status', 'program_code']
    # Seat counts change only through the capacity ledger
    readonly_fields = ['enrolled_count']


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ['trainee_id', 'session', 'status', 'source', 'enrolled_at']
    list_filter = ['status', 'source']
    readonly_fields = ['status']


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):
    list_display = ['session', 'position', 'trainee_id', 'status', 'joined_at']
    list_filter = ['status']
    readonly_fields = ['position', 'status']


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ['title', 'session', 'duration_minutes', 'passing_score', 'is_published']
    list_filter = ['is_published']
    inlines = [QuestionInline]


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ['trainee_id', 'exam', 'status', 'percentage_score', 'passed', 'started_at']
    list_filter = ['status', 'passed', 'requires_manual_review']


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ['certificate_number', 'trainee_id', 'session', 'status', 'render_status', 'issued_at']
    list_filter = ['status', 'render_status']
    search_fields = ['certificate_number']
