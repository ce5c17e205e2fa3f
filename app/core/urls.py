"""
URL configuration for the tutoring CRM.
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health(request):
    return JsonResponse({'status': 'ok'})


urlpatterns = [
    path('health/', health, name='health'),
    path('admin/', admin.site.urls),
    path('billing/', include('billing.urls')),
]

# Admin customization
admin.site.site_header = 'Tutoring CRM'
admin.site.site_title = 'CRM Admin'
admin.site.index_title = 'Back office administration'
