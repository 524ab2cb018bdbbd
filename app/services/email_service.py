import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging
from jinja2 import Template

from app.core.config import settings

logger = logging.getLogger(__name__)

STUDENT_CREDENTIALS_SUBJECT = "Bem-vindo(a) à EdunexIA - Seus dados de acesso ao Portal do Aluno"


class EmailService:
    """Email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.SMTP_FROM_EMAIL
        self.from_name = settings.SMTP_FROM_NAME
        self.use_tls = settings.SMTP_USE_TLS
        self.timeout = settings.SMTP_TIMEOUT_SECONDS
        self.login_url = settings.STUDENT_PORTAL_LOGIN_URL

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def send_email(
        self,
        to_email: str,
        subject: str,
        body_text: str,
        body_html: Optional[str] = None,
        reply_to: Optional[str] = None
    ) -> bool:
        """Send an email via SMTP. Never raises; failures are logged and reported as False."""
        if not self.configured:
            logger.warning(f"SMTP not configured; email to {to_email} not sent")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            if reply_to:
                msg['Reply-To'] = reply_to

            msg.attach(MIMEText(body_text, 'plain', 'utf-8'))
            if body_html:
                msg.attach(MIMEText(body_html, 'html', 'utf-8'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}", exc_info=True)
            return False

    def send_student_credentials_email(
        self,
        to_email: str,
        full_name: str,
        password: str,
        course_name: str
    ) -> bool:
        """Welcome a newly provisioned student with their portal login and initial password"""
        text, html = EmailTemplates.student_credentials(
            student_name=full_name,
            login=to_email,
            password=password,
            course_name=course_name,
            login_url=self.login_url,
        )
        return self.send_email(
            to_email=to_email,
            subject=STUDENT_CREDENTIALS_SUBJECT,
            body_text=text,
            body_html=html,
        )


_CREDENTIALS_TEXT = Template("""
Olá, {{ student_name }}!

Sua matrícula no curso {{ course_name }} foi confirmada.

Seus dados de acesso ao Portal do Aluno:
- Login: {{ login }}
- Senha: {{ password }}

Acesse: {{ login_url }}

Recomendamos alterar a senha no primeiro acesso.

Atenciosamente,
Equipe EdunexIA
""")

_CREDENTIALS_HTML = Template("""
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { background-color: #3b5bdb; color: white; padding: 20px; text-align: center; }
        .content { background-color: #f9f9f9; padding: 20px; border-radius: 5px; margin: 20px 0; }
        .credentials { background-color: white; padding: 15px; border-left: 4px solid #3b5bdb; }
        .button { display: inline-block; background-color: #3b5bdb; color: white; padding: 10px 20px; text-decoration: none; border-radius: 4px; }
        .footer { text-align: center; color: #666; font-size: 12px; margin-top: 20px; }
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h2>Bem-vindo(a) à EdunexIA</h2>
        </div>

        <div class="content">
            <p>Olá, {{ student_name }}!</p>

            <p>Sua matrícula no curso <strong>{{ course_name }}</strong> foi confirmada.</p>

            <div class="credentials">
                <h3>Seus dados de acesso ao Portal do Aluno</h3>
                <table width="100%" style="margin: 15px 0;">
                    <tr>
                        <td><strong>Login:</strong></td>
                        <td>{{ login }}</td>
                    </tr>
                    <tr>
                        <td><strong>Senha:</strong></td>
                        <td>{{ password }}</td>
                    </tr>
                </table>
            </div>

            <p><a class="button" href="{{ login_url }}">Acessar o Portal do Aluno</a></p>

            <p>Recomendamos alterar a senha no primeiro acesso.</p>
        </div>

        <div class="footer">
            <p>Esta é uma mensagem automática da EdunexIA.</p>
        </div>
    </div>
</body>
</html>
""", autoescape=True)


class EmailTemplates:
    """Email templates for student notifications"""

    @staticmethod
    def student_credentials(
        student_name: str,
        login: str,
        password: str,
        course_name: str,
        login_url: str
    ) -> tuple[str, str]:
        """Generate the welcome + credentials email (text and HTML)"""
        context = {
            "student_name": student_name,
            "login": login,
            "password": password,
            "course_name": course_name,
            "login_url": login_url,
        }
        return _CREDENTIALS_TEXT.render(**context), _CREDENTIALS_HTML.render(**context)


# Singleton instance
email_service = EmailService()
