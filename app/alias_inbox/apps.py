from django.apps import AppConfig


####################################################################
#
class AliasInboxConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "alias_inbox"
    verbose_name = "Alias inbox"
