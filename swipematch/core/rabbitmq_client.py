# swipematch/core/rabbitmq_client.py

import json
from typing import Any, Dict, Optional

import aio_pika
from loguru import logger


class AsyncRabbitMQClient:
	def __init__(self, rabbitmq_url: str):
		"""
		Initialize RabbitMQ client.

		Args:
			rabbitmq_url: Connection URL for RabbitMQ
		"""
		self.rabbitmq_url = rabbitmq_url
		self.connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
		self.channel: Optional[aio_pika.abc.AbstractChannel] = None
		self._declared: set = set()

	def is_connected(self) -> bool:
		"""Check if client is connected to RabbitMQ."""
		return self.connection is not None and not self.connection.is_closed

	async def connect(self) -> None:
		"""Establish a robust connection and channel."""
		try:
			logger.info("Connecting to RabbitMQ...", action="connect_rabbitmq")
			self.connection = await aio_pika.connect_robust(self.rabbitmq_url)
			self.channel = await self.connection.channel()
			self._declared.clear()
			logger.info("RabbitMQ connection and channel initialized", action="connect_rabbitmq")
		except Exception as e:
			logger.error(
				"Failed to connect to RabbitMQ",
				action="connect_rabbitmq",
				error=str(e),
			)
			raise

	async def declare_queue(self, queue_name: str) -> None:
		"""Declare a durable queue once per channel."""
		if queue_name in self._declared:
			return
		await self.channel.declare_queue(queue_name, durable=True)
		self._declared.add(queue_name)
		logger.debug("Queue declared", action="declare_queue", queue=queue_name)

	async def send_message(self, queue: str, message: Dict[str, Any]) -> None:
		"""
		Publish a JSON message to the specified queue.

		Args:
			queue: Queue name to send message to
			message: Message content as dictionary
		"""
		if not self.is_connected() or self.channel is None:
			await self.connect()

		await self.declare_queue(queue)
		message_body = json.dumps(message, default=str).encode()

		await self.channel.default_exchange.publish(
			aio_pika.Message(
				body=message_body,
				content_type="application/json",
				delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
			),
			routing_key=queue,
		)
		logger.debug(
			"Message sent to queue",
			action="send_message",
			queue=queue,
			message_size=len(message_body),
		)

	async def close(self) -> None:
		"""Close the RabbitMQ connection."""
		if self.connection is not None and not self.connection.is_closed:
			await self.connection.close()
			logger.info("RabbitMQ connection closed")
		self.connection = None
		self.channel = None
