from django.urls import path
from . import views

urlpatterns = [
    # requests
    path("requests/", views.requests_root, name="requests"),
    path("requests/<int:pk>/", views.request_detail, name="request_detail"),
    path("requests/<int:pk>/approve/", views.request_approve, name="request_approve"),
    path("requests/<int:pk>/reject/", views.request_reject, name="request_reject"),
    path("requests/<int:pk>/cancel/", views.request_cancel, name="request_cancel"),
    path("requests/<int:pk>/confirm-collection/", views.request_confirm_collection, name="request_confirm_collection"),
    path("requests/<int:pk>/verify/", views.request_verify, name="request_verify"),
    path("requests/<int:pk>/reschedule/", views.request_reschedule, name="request_reschedule"),
    path("requests/<int:pk>/resolve-reschedule/", views.request_resolve_reschedule, name="request_resolve_reschedule"),
    path("requests/<int:pk>/no-show/", views.request_no_show, name="request_no_show"),
    path("requests/<int:pk>/outreach/", views.request_outreach, name="request_outreach"),
    path("requests/<int:pk>/candidates/", views.request_candidates, name="request_candidates"),
    path("requests/<int:pk>/responses/", views.request_responses, name="request_responses"),

    # appointments
    path("appointments/", views.appointments_root, name="appointments"),
    path("appointments/<int:pk>/confirm/", views.appointment_confirm, name="appointment_confirm"),
    path("appointments/<int:pk>/start/", views.appointment_start, name="appointment_start"),
    path("appointments/<int:pk>/complete/", views.appointment_complete, name="appointment_complete"),
    path("appointments/<int:pk>/cancel/", views.appointment_cancel, name="appointment_cancel"),
    path("appointments/<int:pk>/no-show/", views.appointment_no_show, name="appointment_no_show"),

    # donors
    path("donors/<int:pk>/eligibility/", views.donor_eligibility, name="donor_eligibility"),
    path("donors/<int:pk>/donations/", views.donor_history, name="donor_history"),
    path("donations/", views.donations_root, name="donations"),
]
