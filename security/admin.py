# apps/security/admin.py
"""Django Admin для PIN доступа."""

from django import forms
from django.contrib import admin

from .models import AccessPin


class AccessPinForm(forms.ModelForm):
    """Форма с вводом PIN открытым текстом; сохраняется только хэш."""

    pin = forms.RegexField(
        regex=r'^\d{4,8}$',
        required=False,
        label='Новый PIN',
        help_text='4-8 цифр. Оставьте пустым, чтобы не менять.'
    )

    class Meta:
        model = AccessPin
        fields = ['identity', 'is_active']

    def clean(self):
        cleaned_data = super().clean()
        if not self.instance.pk and not cleaned_data.get('pin'):
            raise forms.ValidationError('PIN обязателен для новой записи')
        return cleaned_data

    def save(self, commit=True):
        access_pin = super().save(commit=False)
        if self.cleaned_data.get('pin'):
            access_pin.set_pin(self.cleaned_data['pin'])
        if commit:
            access_pin.save()
        return access_pin


@admin.register(AccessPin)
class AccessPinAdmin(admin.ModelAdmin):
    form = AccessPinForm
    list_display = ['identity', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['identity']
    readonly_fields = ['updated_at']
