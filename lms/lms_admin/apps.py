from django.apps import AppConfig


class LmsAdminConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'lms_admin'
    # Distinct label so it never collides with Django's built-in 'admin' app
    label = 'lms_admin'
    verbose_name = 'Training Administration'
