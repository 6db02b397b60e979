"""E-mail templates for workflow notifications, keyed by template type and language.

Placeholders use `str.format` syntax and are filled from the transition
context (entity fields, payload, from/to status, derived entity fields).
Missing values render as empty strings.
"""

SIGNATURE = {
    "fr": "Cordialement,\nL'équipe {brand}",
    "en": "Best regards,\nThe {brand} team",
}

TEMPLATES: dict[str, dict[str, tuple[str, str]]] = {
    "quote_sent": {
        "fr": (
            "Votre devis {brand} est prêt",
            "Bonjour,\n\nVotre demande de devis ({origin_port} → {destination_port}) a été traitée.\n\n"
            "Montant: {quote_amount} {currency}\n\nVous pouvez accepter ou refuser ce devis depuis votre espace client.",
        ),
        "en": (
            "Your {brand} quote is ready",
            "Hello,\n\nYour quote request ({origin_port} → {destination_port}) has been processed.\n\n"
            "Amount: {quote_amount} {currency}\n\nYou can accept or refuse this quote from your client space.",
        ),
    },
    "quote_accepted": {
        "fr": (
            "Votre devis a été accepté",
            "Bonjour,\n\nLe devis ({origin_port} → {destination_port}) est accepté. "
            "Nous préparons maintenant votre expédition.",
        ),
        "en": (
            "Your quote has been accepted",
            "Hello,\n\nThe quote ({origin_port} → {destination_port}) is accepted. "
            "We are now preparing your shipment.",
        ),
    },
    "quote_refused": {
        "fr": (
            "Votre devis a été refusé",
            "Bonjour,\n\nNous avons bien enregistré le refus du devis ({origin_port} → {destination_port}).",
        ),
        "en": (
            "Your quote has been refused",
            "Hello,\n\nWe have recorded that the quote ({origin_port} → {destination_port}) was refused.",
        ),
    },
    "shipment_created": {
        "fr": (
            "Votre expédition {derived[tracking_number]} a été créée",
            "Bonjour,\n\nUn suivi d'expédition a été créé avec le numéro: {derived[tracking_number]}.",
        ),
        "en": (
            "Your shipment {derived[tracking_number]} has been created",
            "Hello,\n\nA shipment has been created with tracking number: {derived[tracking_number]}.",
        ),
    },
    "shipment_update": {
        "fr": (
            "Mise à jour de votre expédition {tracking_number}",
            "Bonjour,\n\nVotre expédition {tracking_number} a été mise à jour.\n\n"
            "Statut actuel: {status_label}\n\n{client_visible_notes}",
        ),
        "en": (
            "Update on your shipment {tracking_number}",
            "Hello,\n\nYour shipment {tracking_number} has been updated.\n\n"
            "Current status: {status_label}\n\n{client_visible_notes}",
        ),
    },
    "shipment_delivered": {
        "fr": (
            "Votre expédition {tracking_number} a été livrée",
            "Bonjour,\n\nVotre expédition {tracking_number} est arrivée à destination ({destination_port}).",
        ),
        "en": (
            "Your shipment {tracking_number} has been delivered",
            "Hello,\n\nYour shipment {tracking_number} has reached its destination ({destination_port}).",
        ),
    },
    "agent_validated": {
        "fr": (
            "Votre candidature {brand} a été validée",
            "Bonjour,\n\nNous avons le plaisir de vous informer que votre candidature en tant qu'agent "
            "{brand} a été validée.\n\nVotre profil est maintenant visible sur notre plateforme.",
        ),
        "en": (
            "Your {brand} application has been validated",
            "Hello,\n\nWe are pleased to inform you that your application as a {brand} agent "
            "has been validated.\n\nYour profile is now visible on our platform.",
        ),
    },
    "agent_rejected": {
        "fr": (
            "Votre candidature {brand}",
            "Bonjour,\n\nNous sommes au regret de vous informer que votre candidature n'a pas été retenue.",
        ),
        "en": (
            "Your {brand} application",
            "Hello,\n\nWe regret to inform you that your application has not been accepted.",
        ),
    },
    "agent_suspended": {
        "fr": (
            "Votre profil agent {brand} est suspendu",
            "Bonjour,\n\nVotre profil d'agent ({company_name}) est temporairement retiré de notre plateforme.",
        ),
        "en": (
            "Your {brand} agent profile is suspended",
            "Hello,\n\nYour agent profile ({company_name}) has been temporarily removed from our platform.",
        ),
    },
    "subscription_activated": {
        "fr": (
            "Votre abonnement {plan_label} est actif",
            "Bonjour,\n\nVotre abonnement {plan_label} est maintenant actif.",
        ),
        "en": (
            "Your {plan_label} subscription is active",
            "Hello,\n\nYour {plan_label} subscription is now active.",
        ),
    },
    "subscription_deactivated": {
        "fr": (
            "Votre abonnement {plan_label} a été désactivé",
            "Bonjour,\n\nVotre abonnement {plan_label} a été désactivé.",
        ),
        "en": (
            "Your {plan_label} subscription has been deactivated",
            "Hello,\n\nYour {plan_label} subscription has been deactivated.",
        ),
    },
    "subscription_extended": {
        "fr": (
            "Votre abonnement {plan_label} a été prolongé",
            "Bonjour,\n\nNous avons le plaisir de vous informer que votre abonnement {plan_label} "
            "a été prolongé de {months} mois.\n\nNouvelle date de fin: {end_date}",
        ),
        "en": (
            "Your {plan_label} subscription has been extended",
            "Hello,\n\nWe are pleased to inform you that your {plan_label} subscription "
            "has been extended by {months} months.\n\nNew end date: {end_date}",
        ),
    },
    "subscription_expired": {
        "fr": (
            "Votre abonnement {plan_label} a expiré",
            "Bonjour,\n\nVotre abonnement {plan_label} a expiré le {end_date}.",
        ),
        "en": (
            "Your {plan_label} subscription has expired",
            "Hello,\n\nYour {plan_label} subscription expired on {end_date}.",
        ),
    },
    "subscription_reminder": {
        "fr": (
            "Votre abonnement {plan_label}",
            "Bonjour,\n\nNous vous contactons concernant votre abonnement {plan_label}.\n\n"
            "Statut: {status_label}\nDate de début: {start_date}\nDate de fin: {end_date}",
        ),
        "en": (
            "Your {plan_label} subscription",
            "Hello,\n\nWe are contacting you regarding your {plan_label} subscription.\n\n"
            "Status: {status_label}\nStart date: {start_date}\nEnd date: {end_date}",
        ),
    },
}
