"""Visualization utilities for price history and holders."""

import plotly.graph_objects as go
from typing import List, Dict
import pandas as pd

from token_exchange.core.trade import PriceSample


def price_frame(samples: List[PriceSample]) -> pd.DataFrame:
    """Price samples as a DataFrame with a UTC datetime column."""
    df = pd.DataFrame(
        [{'timestamp': s.timestamp, 'price': float(s.price)} for s in samples],
        columns=['timestamp', 'price'],
    )
    df['time'] = pd.to_datetime(df['timestamp'], unit='ms', utc=True)
    return df


def create_price_chart(samples: List[PriceSample], title: str = 'YNG Price (EUR)'):
    """Create line chart of the token price."""
    df = price_frame(samples)

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=df['time'],
        y=df['price'],
        mode='lines',
        name='Price',
        line=dict(color='#00d2ff', width=2, shape='spline'),
        fill='tozeroy',
        fillcolor='rgba(0, 210, 255, 0.1)'
    ))

    fig.update_layout(
        title=title,
        xaxis_title='Time',
        yaxis_title='Price',
        yaxis_tickformat='.6f',
        hovermode='x unified',
        showlegend=False,
        template='plotly_white',
        height=400
    )

    return fig


def create_leaderboard_chart(leaderboard: List[Dict]):
    """Create bar chart of the top token holders."""
    df = pd.DataFrame(leaderboard)

    if df.empty:
        return None

    df['token_balance'] = df['token_balance'].astype(float)

    fig = go.Figure()

    fig.add_trace(go.Bar(
        x=df['username'],
        y=df['token_balance'],
        marker_color='#4CAF50',
        text=[f"{tokens:.4f}" for tokens in df['token_balance']],
        textposition='outside'
    ))

    fig.update_layout(
        title='Top Holders',
        xaxis_title='Trader',
        yaxis_title='Tokens',
        template='plotly_white',
        height=400
    )

    return fig
