"""add_credit_ledger_functions

Revision ID: 8e5d0c3a6f12
Revises: 4c1f2a9b7d30
Create Date: 2026-02-02 10:42:07.530914

Functions called by the stored-procedure ledger backend. Each runs as a
single transaction and returns a jsonb result with ``success``,
``new_balance`` and ``error`` keys.
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "8e5d0c3a6f12"
down_revision = "4c1f2a9b7d30"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION get_user_balance(p_user_id uuid)
        RETURNS integer
        LANGUAGE sql STABLE
        AS $$
            SELECT COALESCE(
                (SELECT credits_balance FROM user_profiles WHERE id = p_user_id), 0
            );
        $$;
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION apply_credit_purchase_secure(p_purchase_id uuid)
        RETURNS jsonb
        LANGUAGE plpgsql
        AS $$
        DECLARE
            v_purchase credit_purchases%ROWTYPE;
            v_balance integer;
        BEGIN
            SELECT * INTO v_purchase
            FROM credit_purchases
            WHERE id = p_purchase_id
            FOR UPDATE;

            IF NOT FOUND THEN
                RETURN jsonb_build_object('success', false, 'error', 'Purchase not found');
            END IF;

            IF v_purchase.applied_at IS NOT NULL THEN
                RETURN jsonb_build_object(
                    'success', true,
                    'already_applied', true,
                    'new_balance', get_user_balance(v_purchase.user_id)
                );
            END IF;

            IF v_purchase.payment_status <> 'approved' THEN
                RETURN jsonb_build_object(
                    'success', false,
                    'error', format('Purchase is %s, not approved', v_purchase.payment_status)
                );
            END IF;

            UPDATE credit_purchases
            SET applied_at = now(), updated_at = now()
            WHERE id = p_purchase_id;

            UPDATE user_profiles
            SET credits_balance = credits_balance + v_purchase.credits_amount,
                updated_at = now()
            WHERE id = v_purchase.user_id
            RETURNING credits_balance INTO v_balance;

            IF NOT FOUND THEN
                RAISE EXCEPTION 'User profile % not found', v_purchase.user_id;
            END IF;

            INSERT INTO credit_transactions (
                id, user_id, amount, balance_after, transaction_type,
                purchase_id, description, created_at
            ) VALUES (
                gen_random_uuid(), v_purchase.user_id, v_purchase.credits_amount,
                v_balance, 'purchase', p_purchase_id,
                format('Purchase of %s credits', v_purchase.credits_amount), now()
            );

            RETURN jsonb_build_object('success', true, 'new_balance', v_balance);
        END;
        $$;
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION consume_credit_for_video_secure(
            p_user_id uuid, p_video_id uuid
        )
        RETURNS jsonb
        LANGUAGE plpgsql
        AS $$
        DECLARE
            v_balance integer;
        BEGIN
            UPDATE video_generations
            SET credits_used = 1, updated_at = now()
            WHERE id = p_video_id AND user_id = p_user_id AND credits_used = 0;

            IF NOT FOUND THEN
                IF EXISTS (
                    SELECT 1 FROM video_generations
                    WHERE id = p_video_id AND user_id = p_user_id
                ) THEN
                    RETURN jsonb_build_object(
                        'success', false, 'error', 'Credit already consumed for video'
                    );
                END IF;
                RETURN jsonb_build_object('success', false, 'error', 'Video not found');
            END IF;

            UPDATE user_profiles
            SET credits_balance = credits_balance - 1, updated_at = now()
            WHERE id = p_user_id AND credits_balance >= 1
            RETURNING credits_balance INTO v_balance;

            IF NOT FOUND THEN
                -- Undo the marker so the video can be charged later
                UPDATE video_generations SET credits_used = 0 WHERE id = p_video_id;
                RETURN jsonb_build_object(
                    'success', false,
                    'error', 'Insufficient credits',
                    'new_balance', get_user_balance(p_user_id)
                );
            END IF;

            INSERT INTO credit_transactions (
                id, user_id, amount, balance_after, transaction_type,
                video_id, description, created_at
            ) VALUES (
                gen_random_uuid(), p_user_id, -1, v_balance, 'consumption',
                p_video_id, 'Video generation', now()
            );

            RETURN jsonb_build_object('success', true, 'new_balance', v_balance);
        END;
        $$;
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION refund_credits_for_vidu_failure(p_video_id uuid)
        RETURNS jsonb
        LANGUAGE plpgsql
        AS $$
        DECLARE
            v_user_id uuid;
            v_net integer;
            v_amount integer;
            v_balance integer;
        BEGIN
            SELECT user_id INTO v_user_id
            FROM video_generations
            WHERE id = p_video_id;

            IF NOT FOUND THEN
                RETURN jsonb_build_object('success', false, 'error', 'Video not found');
            END IF;

            UPDATE video_generations
            SET credits_used = 0, updated_at = now()
            WHERE id = p_video_id AND credits_used = 1;

            IF NOT FOUND THEN
                RETURN jsonb_build_object(
                    'success', false,
                    'error', 'No credits to refund',
                    'new_balance', get_user_balance(v_user_id)
                );
            END IF;

            SELECT COALESCE(SUM(amount), 0) INTO v_net
            FROM credit_transactions
            WHERE video_id = p_video_id
              AND transaction_type IN ('consumption', 'refund');

            v_amount := CASE WHEN v_net < 0 THEN -v_net ELSE 1 END;

            UPDATE user_profiles
            SET credits_balance = credits_balance + v_amount, updated_at = now()
            WHERE id = v_user_id
            RETURNING credits_balance INTO v_balance;

            INSERT INTO credit_transactions (
                id, user_id, amount, balance_after, transaction_type,
                video_id, description, created_at
            ) VALUES (
                gen_random_uuid(), v_user_id, v_amount, v_balance, 'refund',
                p_video_id, 'Refund for failed video generation', now()
            );

            RETURN jsonb_build_object('success', true, 'new_balance', v_balance);
        END;
        $$;
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION create_video_and_consume_credits_atomic(
            p_user_id uuid, p_prompt text, p_image_base64 text DEFAULT NULL
        )
        RETURNS jsonb
        LANGUAGE plpgsql
        AS $$
        DECLARE
            v_video_id uuid := gen_random_uuid();
            v_balance integer;
        BEGIN
            UPDATE user_profiles
            SET credits_balance = credits_balance - 1, updated_at = now()
            WHERE id = p_user_id AND credits_balance >= 1
            RETURNING credits_balance INTO v_balance;

            IF NOT FOUND THEN
                RETURN jsonb_build_object(
                    'success', false,
                    'error', 'Insufficient credits',
                    'new_balance', get_user_balance(p_user_id)
                );
            END IF;

            INSERT INTO video_generations (
                id, user_id, prompt, input_image_base64, status, credits_used,
                retry_count, max_retries, created_at, updated_at
            ) VALUES (
                v_video_id, p_user_id, p_prompt, p_image_base64, 'pending', 1,
                0, 1, now(), now()
            );

            INSERT INTO credit_transactions (
                id, user_id, amount, balance_after, transaction_type,
                video_id, description, created_at
            ) VALUES (
                gen_random_uuid(), p_user_id, -1, v_balance, 'consumption',
                v_video_id, 'Video generation', now()
            );

            RETURN jsonb_build_object(
                'success', true, 'video_id', v_video_id, 'new_balance', v_balance
            );
        END;
        $$;
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS create_video_and_consume_credits_atomic(uuid, text, text)")
    op.execute("DROP FUNCTION IF EXISTS refund_credits_for_vidu_failure(uuid)")
    op.execute("DROP FUNCTION IF EXISTS consume_credit_for_video_secure(uuid, uuid)")
    op.execute("DROP FUNCTION IF EXISTS apply_credit_purchase_secure(uuid)")
    op.execute("DROP FUNCTION IF EXISTS get_user_balance(uuid)")
