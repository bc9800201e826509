# 3rd party imports
#
from django.contrib import admin, messages

# Project imports
#
from .accounts import (
    check_can_delete,
    check_can_disable,
    purge_account_records,
)
from .aliases import set_alias_disabled
from .exceptions import QuotaExceeded, ValidationError
from .models import Account, Alias, EmailRecord


class AliasInline(admin.TabularInline):
    model = Alias
    fields = ("local_part", "disabled", "created_at")
    readonly_fields = ("created_at",)
    extra = 0


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "username",
        "email",
        "role",
        "alias_limit",
        "disabled",
        "created_at",
    )
    list_filter = ("role", "disabled", "created_at")
    search_fields = ("username", "email")
    date_hierarchy = "created_at"
    readonly_fields = ("id", "pass_salt", "pass_hash", "pass_iters", "created_at")
    inlines = (AliasInline,)
    actions = ("disable_accounts", "enable_accounts")

    @admin.action(description="Disable selected accounts")
    def disable_accounts(self, request, queryset):
        n = 0
        for account in queryset:
            try:
                check_can_disable(account)
            except ValidationError as exc:
                self.message_user(
                    request, f"{account}: {exc.message}", level=messages.ERROR
                )
                continue
            account.disabled = True
            account.save(update_fields=["disabled"])
            n += 1
        self.message_user(request, f"Disabled {n} accounts")

    @admin.action(description="Enable selected accounts")
    def enable_accounts(self, request, queryset):
        n = queryset.update(disabled=False)
        self.message_user(request, f"Enabled {n} accounts")

    # Deleting an account from the admin goes through the same guard and
    # cascade as the API so the last admin survives and archived raw
    # messages are cleaned up too.
    #
    def has_delete_permission(self, request, obj=None):
        if obj is not None:
            try:
                check_can_delete(obj)
            except ValidationError:
                return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        check_can_delete(obj)
        purge_account_records(obj.pk)

    def delete_queryset(self, request, queryset):
        for account in list(queryset):
            try:
                check_can_delete(account)
            except ValidationError as exc:
                self.message_user(
                    request, f"{account}: {exc.message}", level=messages.ERROR
                )
                continue
            purge_account_records(account.pk)


@admin.register(Alias)
class AliasAdmin(admin.ModelAdmin):
    list_display = ("local_part", "owner", "disabled", "created_at")
    list_filter = ("disabled", "created_at")
    search_fields = ("local_part", "owner__username", "owner__email")
    date_hierarchy = "created_at"
    actions = ("disable_aliases", "enable_aliases")

    @admin.action(description="Disable selected aliases")
    def disable_aliases(self, request, queryset):
        for alias in queryset.select_related("owner"):
            set_alias_disabled(alias, True)
        self.message_user(request, "Disabled selected aliases")

    @admin.action(description="Enable selected aliases")
    def enable_aliases(self, request, queryset):
        for alias in queryset.select_related("owner"):
            try:
                set_alias_disabled(alias, False)
            except QuotaExceeded:
                self.message_user(
                    request,
                    f"{alias.local_part}: {alias.owner} is at their alias limit",
                    level=messages.WARNING,
                )


@admin.register(EmailRecord)
class EmailRecordAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "local_part",
        "owner",
        "from_addr",
        "subject",
        "size",
        "created_at",
    )
    list_filter = ("created_at",)
    search_fields = ("local_part", "from_addr", "subject")
    date_hierarchy = "created_at"
    readonly_fields = ("snippet",)
    exclude = ("text", "html")
