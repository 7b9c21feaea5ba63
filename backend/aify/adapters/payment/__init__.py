"""Payment gateway adapters (Stripe, fake, null)."""
