from aaghaaz.services.email_service import EmailService, email_service
from aaghaaz.services.id_card_service import IdCardService, id_card_service
from aaghaaz.services.image_host import ImageHost, image_host
from aaghaaz.services.student_service import StudentService

__all__ = [
    "EmailService",
    "email_service",
    "IdCardService",
    "id_card_service",
    "ImageHost",
    "image_host",
    "StudentService",
]
