from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models

from encrypted_model_fields.fields import EncryptedTextField


class User(AbstractUser):
    email = models.EmailField(unique=True, verbose_name="Email Address")
    first_name = models.CharField(max_length=30, blank=True, verbose_name="First Name")
    last_name = models.CharField(max_length=30, blank=True, verbose_name="Last Name")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    objects = UserManager()

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return self.email

    @property
    def owner_tag(self) -> str:
        """Identity string stamped on background jobs started by this user."""
        return str(self.pk)


class ExchangeAccount(models.Model):
    EXCHANGE_CHOICES = [
        ("BINANCE", "Binance"),
    ]
    MARKET_CHOICES = [
        ("SPOT", "Spot"),
        ("FUTURES", "Futures"),
        ("BOTH", "Spot and Futures"),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="exchange_accounts")
    name = models.CharField(max_length=100)
    exchange = models.CharField(max_length=20, choices=EXCHANGE_CHOICES, default="BINANCE")
    market = models.CharField(max_length=10, choices=MARKET_CHOICES, default="SPOT")

    # Read-only exchange credentials, encrypted at rest with FIELD_ENCRYPTION_KEY
    api_key = EncryptedTextField(blank=True)
    api_secret = EncryptedTextField(blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "pk"]
        indexes = [
            models.Index(fields=["user", "is_active"], name="accounts_ex_user_active_idx"),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.name} ({self.exchange} {self.market})"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_secret)

    @property
    def markets(self) -> list[str]:
        """Concrete markets to fetch trades from."""
        if self.market == "BOTH":
            return ["SPOT", "FUTURES"]
        return [self.market]
