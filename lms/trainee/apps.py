from django.apps import AppConfig


class TraineeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'trainee'
    verbose_name = 'Learner Progress'
